"""レンズ歪み補正（リマップ）モジュール

内部パラメータと歪み係数から画素ごとのリマップテーブルを事前計算し、
フレームごとに適用して歪みのない映像を生成します。
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

import cv2
import numpy as np

from camcalib.calibration.intrinsics import IntrinsicParameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class RectificationMap:
    """歪み補正用リマップテーブル

    生成後は変更しない。パラメータが変わった場合は新しいインスタンスを生成して丸ごと差し替える。

    Attributes:
        map_x: 出力画素ごとの参照元x座標 (H, W) float32
        map_y: 出力画素ごとの参照元y座標 (H, W) float32
        image_size: 画像サイズ (width, height)
    """

    map_x: np.ndarray
    map_y: np.ndarray
    image_size: tuple[int, int]

    BORDER_VALUE = 0

    @classmethod
    def build(cls, intrinsics: IntrinsicParameters, image_size: tuple[int, int]) -> RectificationMap:
        """内部パラメータからリマップテーブルを生成

        出力側のカメラ行列には入力と同じカメラ行列を用いる。

        Args:
            intrinsics: カメラ内部パラメータ
            image_size: 画像サイズ (width, height)

        Returns:
            RectificationMap
        """
        width, height = int(image_size[0]), int(image_size[1])
        if width <= 0 or height <= 0:
            raise ValueError(f"画像サイズは正である必要があります: {image_size}")

        map_x, map_y = cv2.initUndistortRectifyMap(
            intrinsics.camera_matrix,
            intrinsics.dist_coeffs,
            None,
            intrinsics.camera_matrix,
            (width, height),
            cv2.CV_32FC1,
        )

        logger.info(f"RectificationMap built: {width}x{height}, distortion={intrinsics.distortion.to_dict()}")
        return cls(map_x=map_x, map_y=map_y, image_size=(width, height))

    def apply(self, frame: np.ndarray) -> np.ndarray:
        """フレームにリマップを適用

        参照元が画像外になる画素は黒で埋める。

        Args:
            frame: 入力画像（サイズはimage_sizeと一致すること）

        Returns:
            歪み補正された画像
        """
        height, width = frame.shape[:2]
        if (width, height) != self.image_size:
            raise ValueError(f"フレームサイズが一致しません: {(width, height)} != {self.image_size}")

        return cv2.remap(
            frame,
            self.map_x,
            self.map_y,
            interpolation=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=self.BORDER_VALUE,
        )
