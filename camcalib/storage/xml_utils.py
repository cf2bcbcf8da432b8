"""XML読み書きの共通処理。"""

from __future__ import annotations

import math
from pathlib import Path

from lxml import etree

from camcalib.core.exceptions import StoreFormatError

DATA_TAG = "data"


def format_scalar(value: float) -> str:
    """浮動小数点値を往復で同一値に戻る最短表現の文字列に変換"""
    return repr(float(value))


def append_data(parent: etree._Element, value: float) -> None:
    """<data>値</data> 要素を追加"""
    etree.SubElement(parent, DATA_TAG).text = format_scalar(value)


def read_data_values(element: etree._Element, expected: int, label: str) -> list[float]:
    """<data> 子要素を厳密な個数で読み込む

    Raises:
        StoreFormatError: 個数が一致しない、数値として解釈できない、または有限でない場合
    """
    children = element_children(element)
    if len(children) != expected:
        raise StoreFormatError(f"{label}: 値の個数が不正です: {len(children)} (期待: {expected})")

    values = []
    for child in children:
        if child.tag != DATA_TAG:
            raise StoreFormatError(f"{label}: 不明な要素 <{child.tag}> があります")
        try:
            value = float((child.text or "").strip())
        except ValueError as e:
            raise StoreFormatError(f"{label}: 数値として解釈できません: {child.text!r}") from e
        if not math.isfinite(value):
            raise StoreFormatError(f"{label}: 有限でない値があります: {child.text!r}")
        values.append(value)
    return values


def element_children(element: etree._Element) -> list[etree._Element]:
    """コメント等を除いた子要素のリスト"""
    return [child for child in element if isinstance(child.tag, str)]


def parse_document(path: str | Path, root_tag: str) -> etree._Element:
    """XMLファイルを読み込みルート要素を返す

    Raises:
        FileNotFoundError: ファイルが存在しない場合
        StoreFormatError: XMLとして解釈できない、またはルート要素が異なる場合
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"ファイルが見つかりません: {file_path}")

    parser = etree.XMLParser(remove_comments=True)
    try:
        root = etree.parse(str(file_path), parser).getroot()
    except etree.XMLSyntaxError as e:
        raise StoreFormatError(f"XML解析エラー: {file_path}: {e}") from e

    if root.tag != root_tag:
        raise StoreFormatError(f"ルート要素が不正です: <{root.tag}> (期待: <{root_tag}>)")
    return root


def write_document(root: etree._Element, path: str | Path) -> Path:
    """ルート要素をXMLファイルとして書き出す"""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    etree.ElementTree(root).write(
        str(output_path),
        encoding="utf-8",
        xml_declaration=True,
        pretty_print=True,
    )
    return output_path
