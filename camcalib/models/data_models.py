"""Data models for the camera calibration pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from numbers import Real
from typing import TYPE_CHECKING

import cv2
import numpy as np

from camcalib.core.exceptions import ConfigurationInvalid

if TYPE_CHECKING:
    from camcalib.calibration.intrinsics import IntrinsicParameters


def _is_int(value: object) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


@dataclass(frozen=True)
class PatternGeometry:
    """チェスボードパターンの幾何情報

    Attributes:
        columns: 1行あたりの内部コーナー数
        rows: 1列あたりの内部コーナー数
        square_size: マス目の一辺の長さ [mm]
    """

    columns: int
    rows: int
    square_size: float

    def __post_init__(self):
        if not _is_int(self.columns) or self.columns <= 0:
            raise ConfigurationInvalid(f"columns は正の整数である必要があります: {self.columns!r}")
        if not _is_int(self.rows) or self.rows <= 0:
            raise ConfigurationInvalid(f"rows は正の整数である必要があります: {self.rows!r}")
        if (
            isinstance(self.square_size, bool)
            or not isinstance(self.square_size, Real)
            or not np.isfinite(self.square_size)
            or self.square_size <= 0
        ):
            raise ConfigurationInvalid(f"square_size は正の数値である必要があります: {self.square_size!r}")

    @property
    def n_points(self) -> int:
        """内部コーナーの総数"""
        return self.columns * self.rows

    @property
    def pattern_size(self) -> tuple[int, int]:
        """OpenCV形式のパターンサイズ (columns, rows)"""
        return (int(self.columns), int(self.rows))


@dataclass(frozen=True)
class TerminationCriteria:
    """反復処理の終了条件（最大反復回数 または 移動量の閾値）"""

    max_iterations: int = 100
    epsilon: float = 1e-5

    def to_cv(self) -> tuple[int, int, float]:
        """OpenCV形式のタプルに変換"""
        return (
            cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER,
            int(self.max_iterations),
            float(self.epsilon),
        )


@dataclass(frozen=True)
class ExtrinsicParameters:
    """画像1枚分の外部パラメータ（ボードに対するカメラ姿勢）

    Attributes:
        rvec: 回転ベクトル (3,)
        tvec: 並進ベクトル (3,) [mm]
    """

    rvec: np.ndarray
    tvec: np.ndarray


@dataclass
class CalibrationResult:
    """キャリブレーション結果

    Attributes:
        intrinsics: 内部パラメータ
        extrinsics: 画像ごとの外部パラメータ
        reprojection_error: ソルバーが返したRMS再投影誤差 [pixels]
        image_size: 画像サイズ (width, height)
        per_image_errors: 画像ごとのRMS再投影誤差 [pixels]
    """

    intrinsics: IntrinsicParameters
    extrinsics: list[ExtrinsicParameters]
    reprojection_error: float
    image_size: tuple[int, int]
    per_image_errors: list[float] = field(default_factory=list)
