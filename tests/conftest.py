"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import cv2
import numpy as np
import pytest

from camcalib.calibration.correspondence import CorrespondenceSet
from camcalib.calibration.pattern_model import board_points
from camcalib.models.data_models import PatternGeometry

IMAGE_SIZE = (640, 480)
TRUE_CAMERA_MATRIX = np.array([[800.0, 0.0, 320.0], [0.0, 800.0, 240.0], [0.0, 0.0, 1.0]])

# ボード原点を画像中央付近に置いた傾きの異なる姿勢
BOARD_POSES = [
    ((0.30, 0.00, 0.00), (-110.0, -70.0, 600.0)),
    ((-0.30, 0.00, 0.00), (-110.0, -70.0, 620.0)),
    ((0.00, 0.30, 0.00), (-110.0, -70.0, 580.0)),
    ((0.00, -0.30, 0.00), (-100.0, -60.0, 640.0)),
    ((0.20, 0.20, 0.10), (-120.0, -80.0, 650.0)),
    ((-0.20, 0.25, -0.10), (-90.0, -70.0, 600.0)),
    ((0.25, -0.20, 0.05), (-110.0, -50.0, 700.0)),
    ((-0.15, -0.25, 0.15), (-130.0, -75.0, 560.0)),
]


def render_chessboard(columns: int, rows: int, square_px: int = 40, margin: int = 60) -> np.ndarray:
    """内部コーナー数 columns x rows の正面チェスボード画像を生成する"""
    squares_x, squares_y = columns + 1, rows + 1
    height = squares_y * square_px + 2 * margin
    width = squares_x * square_px + 2 * margin
    image = np.full((height, width), 255, dtype=np.uint8)

    for r in range(squares_y):
        for c in range(squares_x):
            if (r + c) % 2 == 0:
                y0 = margin + r * square_px
                x0 = margin + c * square_px
                image[y0 : y0 + square_px, x0 : x0 + square_px] = 0
    return image


def expected_inner_corners(columns: int, rows: int, square_px: int = 40, margin: int = 60) -> np.ndarray:
    """render_chessboard の内部コーナー位置（画素中心座標系）"""
    xs = margin + square_px * np.arange(1, columns + 1) - 0.5
    ys = margin + square_px * np.arange(1, rows + 1) - 0.5
    grid_x, grid_y = np.meshgrid(xs, ys)
    return np.stack([grid_x.ravel(), grid_y.ravel()], axis=1)


def project_board(pattern: PatternGeometry, poses=BOARD_POSES, dist_coeffs=None) -> list[np.ndarray]:
    """既知のカメラでボード座標を投影した画像座標を生成する"""
    board = board_points(pattern).astype(np.float64)
    dist = np.zeros(5) if dist_coeffs is None else np.asarray(dist_coeffs, dtype=np.float64)
    projected = []
    for rvec, tvec in poses:
        points, _ = cv2.projectPoints(
            board,
            np.array(rvec, dtype=np.float64),
            np.array(tvec, dtype=np.float64),
            TRUE_CAMERA_MATRIX,
            dist,
        )
        projected.append(points.reshape(-1, 2).astype(np.float32))
    return projected


def render_board_view(
    pattern: PatternGeometry, rvec, tvec, square_px: int = 40, margin: int = 60
) -> np.ndarray:
    """既知カメラから見たチェスボード画像を生成する（背景は白）"""
    flat = render_chessboard(pattern.columns, pattern.rows, square_px, margin)

    # 正面画像の画素座標 -> ボード座標 [mm]
    scale = square_px / pattern.square_size
    offset = margin + square_px - 0.5
    board_from_flat = np.linalg.inv(np.array([[scale, 0.0, offset], [0.0, scale, offset], [0.0, 0.0, 1.0]]))

    rotation, _ = cv2.Rodrigues(np.array(rvec, dtype=np.float64))
    extrinsic = np.column_stack([rotation[:, 0], rotation[:, 1], np.array(tvec, dtype=np.float64)])
    homography = TRUE_CAMERA_MATRIX @ extrinsic @ board_from_flat

    return cv2.warpPerspective(
        flat,
        homography,
        IMAGE_SIZE,
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=255,
    )


@pytest.fixture
def pattern() -> PatternGeometry:
    """12x8コーナー、20mmのパターン"""
    return PatternGeometry(columns=12, rows=8, square_size=20.0)


@pytest.fixture
def small_pattern() -> PatternGeometry:
    """検出テスト用の小さいパターン"""
    return PatternGeometry(columns=6, rows=4, square_size=25.0)


@pytest.fixture
def synthetic_correspondences(pattern: PatternGeometry) -> CorrespondenceSet:
    """既知カメラで投影した全スロット確定済みの対応点"""
    image_points = project_board(pattern)
    object_points = [board_points(pattern) for _ in image_points]
    return CorrespondenceSet.from_arrays(pattern, object_points, image_points)


@pytest.fixture
def chessboard_image(small_pattern: PatternGeometry) -> np.ndarray:
    return render_chessboard(small_pattern.columns, small_pattern.rows)


@pytest.fixture
def blank_frame() -> np.ndarray:
    """チェスボードを含まないフレーム (480x640)"""
    return np.full((IMAGE_SIZE[1], IMAGE_SIZE[0]), 128, dtype=np.uint8)


@pytest.fixture
def chessboard_corners(small_pattern: PatternGeometry) -> np.ndarray:
    """chessboard_image の真のコーナー位置"""
    return expected_inner_corners(small_pattern.columns, small_pattern.rows)


TRUE_DISTORTION = np.array([-0.12, 0.03, 0.001, -0.0005, 0.0])


@pytest.fixture
def image_size() -> tuple[int, int]:
    return IMAGE_SIZE


@pytest.fixture
def true_camera_matrix() -> np.ndarray:
    return TRUE_CAMERA_MATRIX.copy()


@pytest.fixture
def true_distortion() -> np.ndarray:
    return TRUE_DISTORTION.copy()


@pytest.fixture
def distorted_correspondences(pattern: PatternGeometry) -> CorrespondenceSet:
    """歪みのあるカメラで投影した対応点"""
    image_points = project_board(pattern, dist_coeffs=TRUE_DISTORTION)
    object_points = [board_points(pattern) for _ in image_points]
    return CorrespondenceSet.from_arrays(pattern, object_points, image_points)


@pytest.fixture
def board_views(pattern: PatternGeometry) -> list[np.ndarray]:
    """BOARD_POSES の各姿勢で撮影したチェスボード画像"""
    return [render_board_view(pattern, rvec, tvec) for rvec, tvec in BOARD_POSES]
