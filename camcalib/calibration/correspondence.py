"""対応点データ管理モジュール。

画像ごとのボード座標（3D）と検出コーナー座標（2D）の対応を保持します。
"""

from __future__ import annotations

import logging

import numpy as np

from camcalib.calibration.pattern_model import generate_object_points
from camcalib.core.exceptions import ConfigurationInvalid
from camcalib.models.data_models import PatternGeometry

logger = logging.getLogger(__name__)


class CorrespondenceSet:
    """対応点データセット。

    (n_images, nPoints) の固定サイズ領域を生成時に確保し、以後サイズは変えない。
    画像スロットは取得順に 0..n_images-1 へ1つずつコミットされる。
    スロットへの書き込みはコミット完了時にのみ可視になる。

    Attributes:
        pattern: パターン幾何情報
        n_images: 画像スロット数
    """

    def __init__(self, pattern: PatternGeometry, n_images: int):
        if isinstance(n_images, bool) or not isinstance(n_images, (int, np.integer)) or n_images <= 0:
            raise ConfigurationInvalid(f"画像枚数は正の整数である必要があります: {n_images!r}")

        self.pattern = pattern
        self.n_images = int(n_images)
        self._object_points = generate_object_points(pattern, self.n_images)
        self._image_points = np.zeros((self.n_images, pattern.n_points, 2), dtype=np.float32)
        self._committed = 0

    @property
    def n_points(self) -> int:
        return self.pattern.n_points

    @property
    def committed_count(self) -> int:
        """コミット済みスロット数"""
        return self._committed

    @property
    def is_complete(self) -> bool:
        return self._committed == self.n_images

    def __len__(self) -> int:
        return self._committed

    def commit(self, image_points: np.ndarray, object_points: np.ndarray | None = None) -> int:
        """次のスロットに1画像分の対応点をコミットする

        Args:
            image_points: 検出コーナー (nPoints, 2) または (nPoints, 1, 2)
            object_points: ボード座標 (nPoints, 3)。省略時はパターンから生成した座標を使う

        Returns:
            コミットしたスロットのインデックス（0始まり）

        Raises:
            ValueError: 点数が一致しない場合
            RuntimeError: すべてのスロットが埋まっている場合
        """
        if self.is_complete:
            raise RuntimeError(f"すべてのスロットがコミット済みです: {self.n_images}")

        points = np.asarray(image_points, dtype=np.float32).reshape(-1, 2)
        if len(points) != self.n_points:
            raise ValueError(f"コーナー数が一致しません: {len(points)} != {self.n_points}")

        if object_points is not None:
            board = np.asarray(object_points, dtype=np.float32).reshape(-1, 3)
            if len(board) != self.n_points:
                raise ValueError(f"ボード座標数が一致しません: {len(board)} != {self.n_points}")
        else:
            board = None

        index = self._committed
        self._image_points[index] = points
        if board is not None:
            self._object_points[index] = board
        self._committed = index + 1

        logger.debug(f"スロット {index + 1}/{self.n_images} をコミットしました")
        return index

    def object_points(self) -> list[np.ndarray]:
        """コミット済みスロットのボード座標リスト（各 (nPoints, 3) float32）"""
        return [self._object_points[i].copy() for i in range(self._committed)]

    def image_points(self) -> list[np.ndarray]:
        """コミット済みスロットの検出コーナーリスト（各 (nPoints, 2) float32）"""
        return [self._image_points[i].copy() for i in range(self._committed)]

    def entry(self, index: int) -> tuple[np.ndarray, np.ndarray]:
        """スロットの (ボード座標, 検出コーナー) を返す"""
        if not 0 <= index < self._committed:
            raise IndexError(f"スロット {index} はコミットされていません")
        return self._object_points[index].copy(), self._image_points[index].copy()

    @classmethod
    def from_arrays(
        cls,
        pattern: PatternGeometry,
        object_points: list[np.ndarray] | np.ndarray,
        image_points: list[np.ndarray] | np.ndarray,
    ) -> CorrespondenceSet:
        """既存の対応点から全スロットがコミット済みのセットを作成

        Raises:
            ValueError: 画像数または点数が一致しない場合
        """
        if len(object_points) != len(image_points):
            raise ValueError(f"画像数が一致しません: {len(object_points)} vs {len(image_points)}")

        correspondences = cls(pattern, len(image_points))
        for board, corners in zip(object_points, image_points):
            correspondences.commit(corners, board)
        return correspondences
