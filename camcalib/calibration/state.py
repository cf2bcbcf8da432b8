"""キャリブレーション処理全体の状態管理モジュール。

    IDLE -> ACCUMULATING -> SOLVING -> RECTIFYING
    IDLE -> SOLVING       （対応点をファイルから読み込んだ場合）
    IDLE -> RECTIFYING    （パラメータをファイルから読み込んだ場合）
    RECTIFYING -> IDLE    （reset）
    任意の状態 -> IDLE    （abort）
"""

from __future__ import annotations

from enum import Enum
import logging
import threading
from typing import TYPE_CHECKING

from camcalib.core.exceptions import InvalidStateTransition

if TYPE_CHECKING:
    from camcalib.calibration.intrinsics import IntrinsicParameters
    from camcalib.calibration.rectification import RectificationMap

logger = logging.getLogger(__name__)


class CalibrationPhase(Enum):
    """処理フェーズ"""

    IDLE = "idle"
    ACCUMULATING = "accumulating"
    SOLVING = "solving"
    RECTIFYING = "rectifying"


class CalibrationState:
    """キャリブレーション状態

    フェーズ・現在の内部パラメータ・有効なリマップテーブルを保持する。
    ワーカースレッドとフレーム処理コールバックの双方から参照されるため、ロックで保護する。
    リマップテーブルは丸ごと差し替えるのみで、参照側は常に完全な旧テーブルか新テーブルを得る。
    """

    _ALLOWED = {
        "begin_accumulation": {CalibrationPhase.IDLE},
        "begin_solving": {CalibrationPhase.IDLE, CalibrationPhase.ACCUMULATING},
        "begin_rectifying": {CalibrationPhase.IDLE, CalibrationPhase.SOLVING},
        "reset": {CalibrationPhase.RECTIFYING, CalibrationPhase.IDLE},
    }

    def __init__(self):
        self._lock = threading.Lock()
        self._phase = CalibrationPhase.IDLE
        self._intrinsics: IntrinsicParameters | None = None
        self._rectification_map: RectificationMap | None = None

    @property
    def phase(self) -> CalibrationPhase:
        with self._lock:
            return self._phase

    @property
    def intrinsics(self) -> IntrinsicParameters | None:
        with self._lock:
            return self._intrinsics

    @property
    def rectification_map(self) -> RectificationMap | None:
        with self._lock:
            return self._rectification_map

    def snapshot(self) -> tuple[CalibrationPhase, RectificationMap | None]:
        """フェーズとリマップテーブルを同時に取得"""
        with self._lock:
            return self._phase, self._rectification_map

    def _transition(self, action: str, target: CalibrationPhase) -> None:
        if self._phase not in self._ALLOWED[action]:
            raise InvalidStateTransition(f"{action} は {self._phase.value} 状態からは実行できません")
        logger.debug(f"状態遷移: {self._phase.value} -> {target.value}")
        self._phase = target

    def begin_accumulation(self) -> None:
        with self._lock:
            self._transition("begin_accumulation", CalibrationPhase.ACCUMULATING)

    def begin_solving(self) -> None:
        with self._lock:
            self._transition("begin_solving", CalibrationPhase.SOLVING)

    def begin_rectifying(self, intrinsics: IntrinsicParameters, rectification_map: RectificationMap) -> None:
        """新しいパラメータとリマップテーブルを設定して補正表示を開始"""
        with self._lock:
            self._transition("begin_rectifying", CalibrationPhase.RECTIFYING)
            self._intrinsics = intrinsics
            self._rectification_map = rectification_map

    def reset(self) -> None:
        """補正表示を終了してIDLEに戻る（パラメータは保持）"""
        with self._lock:
            self._transition("reset", CalibrationPhase.IDLE)

    def abort(self) -> None:
        """任意の状態からIDLEに戻る"""
        with self._lock:
            if self._phase is not CalibrationPhase.IDLE:
                logger.info(f"処理を中断しました: {self._phase.value} -> idle")
            self._phase = CalibrationPhase.IDLE
