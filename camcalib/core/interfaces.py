"""ポートインターフェース定義。

キャリブレーションセッションはここで定義されるProtocolに依存し、
具体実装（カメラ、画像ファイル列、テスト用Fake）は video / adapters 層へ分離する。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    import numpy as np


class FrameProviderPort(Protocol):
    """キャリブレーション用フレーム供給ポート。"""

    def next_frame(self, slot: int) -> np.ndarray | None:
        """次のフレームを返す。

        Args:
            slot: 現在埋めようとしている画像スロット番号（1始まり）

        Returns:
            フレーム画像。まだ供給できるフレームがない場合はNone
        """


class CornerDetectorPort(Protocol):
    """チェスボードコーナー検出ポート。"""

    def detect(self, frame: np.ndarray) -> np.ndarray | None:
        """(nPoints, 2) のコーナー座標、または検出失敗時にNoneを返す。"""
