"""Camera calibration module for estimating camera intrinsics and distortion coefficients."""

from __future__ import annotations

import logging

import cv2
import numpy as np

from camcalib.calibration.correspondence import CorrespondenceSet
from camcalib.calibration.intrinsics import N_DISTORTION_COEFFS, IntrinsicParameters
from camcalib.calibration.reprojection_error import ReprojectionErrorEvaluator
from camcalib.core.exceptions import SolveFailure
from camcalib.models.data_models import CalibrationResult, ExtrinsicParameters, TerminationCriteria

logger = logging.getLogger(__name__)


class CameraCalibrator:
    """カメラキャリブレーションクラス

    蓄積済みの対応点からカメラ内部パラメータと歪み係数、画像ごとの外部パラメータを推定します。
    k3 は 0 に固定し、k1, k2, p1, p2 を推定します。
    """

    MIN_IMAGES = 3
    CALIBRATION_FLAGS = cv2.CALIB_FIX_K3

    def __init__(
        self,
        criteria: TerminationCriteria | None = None,
        min_images: int = MIN_IMAGES,
    ):
        """CameraCalibratorを初期化

        Args:
            criteria: ソルバーの終了条件（デフォルト: 100回 / 1e-5）
            min_images: キャリブレーションに必要な最小画像数
        """
        self.criteria = criteria or TerminationCriteria()
        self.min_images = min_images

    def calibrate(self, correspondences: CorrespondenceSet, image_size: tuple[int, int]) -> CalibrationResult:
        """対応点からキャリブレーションを実行

        Args:
            correspondences: 蓄積済みの対応点
            image_size: 画像サイズ (width, height)

        Returns:
            キャリブレーション結果

        Raises:
            SolveFailure: 画像数が不足している、またはソルバーが失敗した場合
        """
        n_images = correspondences.committed_count
        if n_images < self.min_images:
            raise SolveFailure(f"Insufficient images for calibration: {n_images} < {self.min_images}")

        object_points = correspondences.object_points()
        image_points = correspondences.image_points()

        try:
            rms, camera_matrix, dist_coeffs, rvecs, tvecs = cv2.calibrateCamera(
                object_points,
                [pts.reshape(-1, 1, 2) for pts in image_points],
                tuple(int(v) for v in image_size),
                None,
                None,
                flags=self.CALIBRATION_FLAGS,
                criteria=self.criteria.to_cv(),
            )
        except cv2.error as e:
            raise SolveFailure(f"Calibration solver failed: {e}") from e

        dist = np.zeros(N_DISTORTION_COEFFS, dtype=np.float64)
        flat = np.asarray(dist_coeffs, dtype=np.float64).flatten()[:N_DISTORTION_COEFFS]
        dist[: len(flat)] = flat

        if not (np.all(np.isfinite(camera_matrix)) and np.all(np.isfinite(dist)) and np.isfinite(rms)):
            raise SolveFailure("Calibration solver returned non-finite parameters")
        if camera_matrix[0, 0] <= 0 or camera_matrix[1, 1] <= 0:
            raise SolveFailure(f"Calibration solver returned degenerate focal lengths: {camera_matrix.diagonal()}")

        intrinsics = IntrinsicParameters.from_arrays(camera_matrix, dist)
        extrinsics = [
            ExtrinsicParameters(
                rvec=np.asarray(r, dtype=np.float64).reshape(3),
                tvec=np.asarray(t, dtype=np.float64).reshape(3),
            )
            for r, t in zip(rvecs, tvecs)
        ]

        evaluation = ReprojectionErrorEvaluator(intrinsics).evaluate(object_points, image_points, extrinsics)

        logger.info(f"Calibration completed with {n_images} images")
        logger.info(f"Reprojection error (RMS): {rms:.4f}px")
        logger.info(f"Camera matrix:\n{intrinsics.camera_matrix}")
        logger.info(f"Distortion coefficients: {intrinsics.distortion.to_dict()}")

        return CalibrationResult(
            intrinsics=intrinsics,
            extrinsics=extrinsics,
            reprojection_error=float(rms),
            image_size=(int(image_size[0]), int(image_size[1])),
            per_image_errors=list(evaluation["per_image_errors"]),
        )
