"""対応点ストア（DataCorners.xml）の読み書き。

    <Corners_Storage>
      <image1>
        <node1><data>obj-x</data><data>obj-y</data><data>obj-z</data><data>img-x</data><data>img-y</data></node1>
        ...
      </image1>
      ...
    </Corners_Storage>
"""

from __future__ import annotations

import logging
from pathlib import Path

from lxml import etree
import numpy as np

from camcalib.calibration.correspondence import CorrespondenceSet
from camcalib.core.exceptions import StoreFormatError
from camcalib.models.data_models import PatternGeometry
from camcalib.storage.xml_utils import append_data, element_children, parse_document, read_data_values, write_document

logger = logging.getLogger(__name__)

ROOT_TAG = "Corners_Storage"
VALUES_PER_NODE = 5


class CornerStore:
    """対応点ストア

    Attributes:
        path: ストアファイルのパス
    """

    DEFAULT_FILENAME = "DataCorners.xml"

    def __init__(self, path: str | Path = DEFAULT_FILENAME):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, correspondences: CorrespondenceSet) -> Path:
        """コミット済みの全スロットを書き出す

        Raises:
            ValueError: 未確定のスロットが残っている場合
        """
        if not correspondences.is_complete:
            raise ValueError(
                f"未確定のスロットがあります: {correspondences.committed_count}/{correspondences.n_images}"
            )

        root = etree.Element(ROOT_TAG)
        for i, (board, corners) in enumerate(zip(correspondences.object_points(), correspondences.image_points())):
            image_elem = etree.SubElement(root, f"image{i + 1}")
            for n in range(correspondences.n_points):
                node_elem = etree.SubElement(image_elem, f"node{n + 1}")
                for value in (board[n, 0], board[n, 1], board[n, 2], corners[n, 0], corners[n, 1]):
                    append_data(node_elem, value)

        output_path = write_document(root, self.path)
        logger.info(f"対応点を保存しました: {output_path} ({correspondences.n_images}枚 x {correspondences.n_points}点)")
        return output_path

    def load(self, pattern: PatternGeometry, n_images: int) -> CorrespondenceSet:
        """対応点を読み込む

        画像数・点数が設定と完全に一致しない場合や、image{i} / node{n} が連番順に
        並んでいない場合は途中までで打ち切らずにエラーとする。

        Raises:
            FileNotFoundError: ファイルが存在しない場合
            StoreFormatError: 要素数や値が不正な場合
        """
        root = parse_document(self.path, ROOT_TAG)
        images = element_children(root)
        if len(images) != n_images:
            raise StoreFormatError(f"画像数が一致しません: {len(images)} (期待: {n_images})")

        object_points = []
        image_points = []
        for i, image_elem in enumerate(images):
            _check_tag(image_elem, f"image{i + 1}")
            nodes = element_children(image_elem)
            if len(nodes) != pattern.n_points:
                raise StoreFormatError(
                    f"{image_elem.tag}: コーナー数が一致しません: {len(nodes)} (期待: {pattern.n_points})"
                )
            for n, node in enumerate(nodes):
                _check_tag(node, f"node{n + 1}", f"{image_elem.tag}/")

            values = np.array(
                [read_data_values(node, VALUES_PER_NODE, f"image{i + 1}/{node.tag}") for node in nodes],
                dtype=np.float64,
            )
            object_points.append(values[:, :3].astype(np.float32))
            image_points.append(values[:, 3:].astype(np.float32))

        correspondences = CorrespondenceSet.from_arrays(pattern, object_points, image_points)
        logger.info(f"対応点を読み込みました: {self.path} ({n_images}枚 x {pattern.n_points}点)")
        return correspondences


def _check_tag(element: etree._Element, expected: str, prefix: str = "") -> None:
    """要素名が取得順どおりの連番であることを確認"""
    if element.tag != expected:
        raise StoreFormatError(f"{prefix}{element.tag}: 要素の順序が不正です (期待: <{expected}>)")
