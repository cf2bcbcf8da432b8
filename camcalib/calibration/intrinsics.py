"""カメラ内部パラメータモジュール

カメラ行列（3x3）と歪み係数（5要素: k1, k2, p1, p2, k3）を保持します。
キャリブレーションまたはパラメータファイルの読み込みによってのみ更新されます。
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

N_DISTORTION_COEFFS = 5


@dataclass(frozen=True)
class DistortionParams:
    """歪み係数パラメータ

    OpenCVの歪みモデルに対応:
    - k1, k2, k3: 放射歪み係数
    - p1, p2: 接線歪み係数

    歪み式:
    x_distorted = x(1 + k1*r² + k2*r⁴ + k3*r⁶) + 2*p1*x*y + p2*(r² + 2*x²)
    y_distorted = y(1 + k1*r² + k2*r⁴ + k3*r⁶) + p1*(r² + 2*y²) + 2*p2*x*y
    """

    k1: float = 0.0
    k2: float = 0.0
    p1: float = 0.0
    p2: float = 0.0
    k3: float = 0.0

    def to_array(self) -> np.ndarray:
        """OpenCV形式の配列に変換 [k1, k2, p1, p2, k3]"""
        return np.array([self.k1, self.k2, self.p1, self.p2, self.k3], dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray | list) -> DistortionParams:
        """配列から作成

        Raises:
            ValueError: 要素数が5でない場合
        """
        values = np.asarray(arr, dtype=np.float64).flatten()
        if len(values) != N_DISTORTION_COEFFS:
            raise ValueError(f"歪み係数は{N_DISTORTION_COEFFS}要素である必要があります: {len(values)}")
        return cls(
            k1=float(values[0]),
            k2=float(values[1]),
            p1=float(values[2]),
            p2=float(values[3]),
            k3=float(values[4]),
        )

    def is_zero(self) -> bool:
        """すべての係数がゼロか確認"""
        return bool(np.all(np.abs(self.to_array()) < 1e-10))

    def to_dict(self) -> dict[str, float]:
        """辞書に変換"""
        return {
            "k1": self.k1,
            "k2": self.k2,
            "k3": self.k3,
            "p1": self.p1,
            "p2": self.p2,
        }


@dataclass
class IntrinsicParameters:
    """カメラ内部パラメータ

    Attributes:
        camera_matrix: カメラ行列 (3, 3)。[[fx, skew, cx], [0, fy, cy], [0, 0, 1]]
        distortion: 歪み係数
    """

    camera_matrix: np.ndarray = field(default_factory=lambda: np.eye(3, dtype=np.float64))
    distortion: DistortionParams = field(default_factory=DistortionParams)

    def __post_init__(self):
        self.camera_matrix = np.asarray(self.camera_matrix, dtype=np.float64)
        if self.camera_matrix.shape != (3, 3):
            raise ValueError(f"カメラ行列は3x3である必要があります: {self.camera_matrix.shape}")

    @property
    def fx(self) -> float:
        return float(self.camera_matrix[0, 0])

    @property
    def fy(self) -> float:
        return float(self.camera_matrix[1, 1])

    @property
    def cx(self) -> float:
        return float(self.camera_matrix[0, 2])

    @property
    def cy(self) -> float:
        return float(self.camera_matrix[1, 2])

    @property
    def dist_coeffs(self) -> np.ndarray:
        """OpenCV形式の歪み係数 (5,)"""
        return self.distortion.to_array()

    @classmethod
    def from_arrays(cls, camera_matrix: np.ndarray | list, dist_coeffs: np.ndarray | list) -> IntrinsicParameters:
        """行列と係数配列から作成"""
        matrix = np.asarray(camera_matrix, dtype=np.float64).reshape(3, 3)
        return cls(camera_matrix=matrix, distortion=DistortionParams.from_array(dist_coeffs))

    @classmethod
    def from_focal(
        cls,
        fx: float,
        fy: float,
        cx: float,
        cy: float,
        distortion: DistortionParams | None = None,
    ) -> IntrinsicParameters:
        """焦点距離と主点から作成（skew=0）"""
        matrix = np.array(
            [
                [fx, 0, cx],
                [0, fy, cy],
                [0, 0, 1],
            ],
            dtype=np.float64,
        )
        return cls(camera_matrix=matrix, distortion=distortion or DistortionParams())

    def summary(self) -> dict[str, float]:
        """オペレーター表示用の値 (fx, fy, cx, cy, k1, k2, k3, p1, p2)"""
        return {
            "fx": self.fx,
            "fy": self.fy,
            "cx": self.cx,
            "cy": self.cy,
            **self.distortion.to_dict(),
        }
