"""Reprojection error evaluation module for camera calibration results."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import cv2
import numpy as np

if TYPE_CHECKING:
    from camcalib.calibration.intrinsics import IntrinsicParameters
    from camcalib.models.data_models import ExtrinsicParameters

logger = logging.getLogger(__name__)


class ReprojectionErrorEvaluator:
    """再投影誤差評価クラス

    ソルバーが推定した内部・外部パラメータでボード座標を再投影し、
    検出コーナーとの距離を画像ごとに評価します。
    """

    def __init__(self, intrinsics: IntrinsicParameters):
        """ReprojectionErrorEvaluatorを初期化

        Args:
            intrinsics: カメラ内部パラメータ
        """
        self.intrinsics = intrinsics

    def evaluate(
        self,
        object_points: list[np.ndarray],
        image_points: list[np.ndarray],
        extrinsics: list[ExtrinsicParameters],
    ) -> dict[str, float | list[float]]:
        """キャリブレーションの再投影誤差を評価

        Args:
            object_points: 画像ごとのボード座標 (nPoints, 3)
            image_points: 画像ごとの検出コーナー (nPoints, 2)
            extrinsics: 画像ごとの外部パラメータ

        Returns:
            評価結果の辞書:
                - rms_error: 全点のRMS誤差（ピクセル）
                - mean_error: 平均誤差（ピクセル）
                - max_error: 最大誤差（ピクセル）
                - per_image_errors: 画像ごとのRMS誤差リスト
        """
        if not (len(object_points) == len(image_points) == len(extrinsics)):
            raise ValueError(
                f"画像数が一致しません: {len(object_points)}, {len(image_points)}, {len(extrinsics)}"
            )

        if not object_points:
            return {
                "rms_error": 0.0,
                "mean_error": 0.0,
                "max_error": 0.0,
                "per_image_errors": [],
            }

        camera_matrix = self.intrinsics.camera_matrix
        dist_coeffs = self.intrinsics.dist_coeffs

        all_errors = []
        per_image_errors = []

        for obj_pts, img_pts, pose in zip(object_points, image_points, extrinsics):
            projected, _ = cv2.projectPoints(
                np.asarray(obj_pts, dtype=np.float64).reshape(-1, 3),
                pose.rvec,
                pose.tvec,
                camera_matrix,
                dist_coeffs,
            )
            diff = projected.reshape(-1, 2) - np.asarray(img_pts, dtype=np.float64).reshape(-1, 2)
            errors = np.linalg.norm(diff, axis=1)

            all_errors.append(errors)
            per_image_errors.append(float(np.sqrt(np.mean(errors**2))))

        errors_array = np.concatenate(all_errors)

        result: dict[str, float | list[float]] = {
            "rms_error": float(np.sqrt(np.mean(errors_array**2))),
            "mean_error": float(np.mean(errors_array)),
            "max_error": float(np.max(errors_array)),
            "per_image_errors": per_image_errors,
        }

        logger.info(
            f"再投影誤差評価完了: RMS={result['rms_error']:.4f}px, "
            f"平均={result['mean_error']:.4f}px, 最大={result['max_error']:.4f}px"
        )

        return result
