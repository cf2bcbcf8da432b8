"""Chessboard corner detection with sub-pixel refinement."""

from __future__ import annotations

import logging

import cv2
import numpy as np

from camcalib.models.data_models import PatternGeometry, TerminationCriteria
from camcalib.utils.image_utils import to_gray

logger = logging.getLogger(__name__)


class CornerDetector:
    """チェスボードコーナー検出クラス

    内部コーナー数がパターンと完全に一致した場合のみ成功とし、
    各コーナーをサブピクセル精度に補正して返します。
    検出失敗は頻繁に起こる正常系のため、例外ではなくNoneで返します。
    """

    FIND_FLAGS = cv2.CALIB_CB_ADAPTIVE_THRESH | cv2.CALIB_CB_NORMALIZE_IMAGE
    SUBPIX_WINDOW = (5, 5)
    ZERO_ZONE = (-1, -1)

    def __init__(
        self,
        pattern: PatternGeometry,
        criteria: TerminationCriteria | None = None,
    ):
        """CornerDetectorを初期化

        Args:
            pattern: チェスボードのパターン幾何情報
            criteria: サブピクセル補正の終了条件（デフォルト: 100回 / 1e-5）
        """
        self.pattern = pattern
        self.criteria = criteria or TerminationCriteria()

        logger.info(f"CornerDetector initialized with pattern size: {pattern.pattern_size}")

    def detect(self, frame: np.ndarray) -> np.ndarray | None:
        """1フレームからコーナーを検出する

        Args:
            frame: 入力画像（グレースケールまたはBGR）

        Returns:
            (nPoints, 2) float32 のコーナー座標。見つからない場合None
        """
        gray = to_gray(frame)
        found, corners = cv2.findChessboardCorners(gray, self.pattern.pattern_size, flags=self.FIND_FLAGS)

        if not found or corners is None or len(corners) != self.pattern.n_points:
            logger.debug("Chessboard not found in frame")
            return None

        refined = cv2.cornerSubPix(
            gray,
            corners.astype(np.float32),
            self.SUBPIX_WINDOW,
            self.ZERO_ZONE,
            self.criteria.to_cv(),
        )
        return refined.reshape(-1, 2)

    def draw(self, frame: np.ndarray, corners: np.ndarray) -> np.ndarray:
        """検出したグリッドを描画した画像を返す（入力画像は変更しない）"""
        canvas = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR) if frame.ndim == 2 else frame.copy()
        cv2.drawChessboardCorners(
            canvas,
            self.pattern.pattern_size,
            np.asarray(corners, dtype=np.float32).reshape(-1, 1, 2),
            True,
        )
        return canvas
