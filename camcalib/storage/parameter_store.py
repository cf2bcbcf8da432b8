"""内部パラメータストア（Intrinsic.xml）の読み書き。"""

from __future__ import annotations

import logging
from pathlib import Path

from lxml import etree

from camcalib.calibration.intrinsics import N_DISTORTION_COEFFS, IntrinsicParameters
from camcalib.core.exceptions import StoreFormatError
from camcalib.storage.xml_utils import append_data, element_children, parse_document, read_data_values, write_document

logger = logging.getLogger(__name__)

ROOT_TAG = "opencv_storage"
MATRIX_TAG = "matrix_left"
DISTORTION_TAG = "distortion_left"
TYPE_ID = "opencv-matrix"
MATRIX_VALUES = 9


class ParameterStore:
    """内部パラメータストア

    カメラ行列9要素（行優先）と歪み係数5要素をこの順で保存する。

    Attributes:
        path: ストアファイルのパス
    """

    DEFAULT_FILENAME = "Intrinsic.xml"

    def __init__(self, path: str | Path = DEFAULT_FILENAME):
        self.path = Path(path)

    def save(self, intrinsics: IntrinsicParameters) -> Path:
        root = etree.Element(ROOT_TAG)

        matrix_elem = etree.SubElement(root, MATRIX_TAG, type_id=TYPE_ID)
        for value in intrinsics.camera_matrix.reshape(-1):
            append_data(matrix_elem, value)

        distortion_elem = etree.SubElement(root, DISTORTION_TAG, type_id=TYPE_ID)
        for value in intrinsics.dist_coeffs:
            append_data(distortion_elem, value)

        output_path = write_document(root, self.path)
        logger.info(f"内部パラメータを保存しました: {output_path}")
        return output_path

    def load(self) -> IntrinsicParameters:
        """内部パラメータを読み込む

        Raises:
            FileNotFoundError: ファイルが存在しない場合
            StoreFormatError: 要素の欠落や個数の不一致がある場合
        """
        root = parse_document(self.path, ROOT_TAG)

        sections = {}
        for child in element_children(root):
            if child.tag in (MATRIX_TAG, DISTORTION_TAG):
                if child.tag in sections:
                    raise StoreFormatError(f"<{child.tag}> が重複しています")
                sections[child.tag] = child

        for tag in (MATRIX_TAG, DISTORTION_TAG):
            if tag not in sections:
                raise StoreFormatError(f"<{tag}> がありません: {self.path}")

        matrix = read_data_values(sections[MATRIX_TAG], MATRIX_VALUES, MATRIX_TAG)
        distortion = read_data_values(sections[DISTORTION_TAG], N_DISTORTION_COEFFS, DISTORTION_TAG)

        intrinsics = IntrinsicParameters.from_arrays(matrix, distortion)
        logger.info(f"内部パラメータを読み込みました: {self.path}")
        return intrinsics
