"""テスト向けの軽量な Fake 実装群。"""

from __future__ import annotations

from typing import TYPE_CHECKING

from camcalib.core.interfaces import CornerDetectorPort, FrameProviderPort

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    import numpy as np


class FakeFrameSource(FrameProviderPort):
    """与えられたフレームを順に返す。使い切った後に要求されるとEOFErrorを送出する"""

    def __init__(self, frames: Iterable[np.ndarray]):
        self._frames = list(frames)
        self.requested_slots: list[int] = []

    def next_frame(self, slot: int) -> np.ndarray | None:
        self.requested_slots.append(slot)
        if not self._frames:
            raise EOFError(f"フレームを使い切りました: slot={slot}")
        return self._frames.pop(0)


class ScriptedDetector(CornerDetectorPort):
    """あらかじめ決めた成功/失敗の順序で検出結果を返す"""

    def __init__(self, outcomes: Sequence[bool], corners: np.ndarray):
        self._outcomes = list(outcomes)
        self._corners = corners
        self.calls = 0

    def detect(self, frame: np.ndarray) -> np.ndarray | None:
        index = self.calls
        self.calls += 1
        if index >= len(self._outcomes) or not self._outcomes[index]:
            return None
        return self._corners.copy()
