"""チェスボードのワールド座標生成モジュール。"""

from __future__ import annotations

import numpy as np

from camcalib.models.data_models import PatternGeometry


def board_points(pattern: PatternGeometry) -> np.ndarray:
    """1枚分のボード座標を生成する

    行優先（row 0..rows-1, col 0..columns-1）で
    (col * square_size, row * square_size, 0) を並べる。

    Args:
        pattern: パターン幾何情報

    Returns:
        (nPoints, 3) float32
    """
    points = np.zeros((pattern.n_points, 3), dtype=np.float32)
    points[:, :2] = np.mgrid[0 : pattern.columns, 0 : pattern.rows].T.reshape(-1, 2)
    points[:, :2] *= np.float32(pattern.square_size)
    return points


def generate_object_points(pattern: PatternGeometry, n_images: int) -> np.ndarray:
    """全画像分のボード座標を生成する

    どの画像でも同一の座標となる。

    Returns:
        (n_images, nPoints, 3) float32
    """
    return np.tile(board_points(pattern), (max(n_images, 0), 1, 1))
