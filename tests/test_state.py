"""Unit tests for CalibrationState."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from camcalib.calibration.intrinsics import IntrinsicParameters
from camcalib.calibration.state import CalibrationPhase, CalibrationState
from camcalib.core.exceptions import InvalidStateTransition


@pytest.fixture
def intrinsics() -> IntrinsicParameters:
    return IntrinsicParameters.from_focal(800, 800, 320, 240)


class TestCalibrationState:
    """状態遷移のテスト"""

    def test_initial_state(self):
        state = CalibrationState()
        assert state.phase is CalibrationPhase.IDLE
        assert state.intrinsics is None
        assert state.rectification_map is None

    def test_full_cycle(self, intrinsics):
        """IDLE -> ACCUMULATING -> SOLVING -> RECTIFYING -> IDLE"""
        state = CalibrationState()
        rectification_map = MagicMock()

        state.begin_accumulation()
        assert state.phase is CalibrationPhase.ACCUMULATING
        state.begin_solving()
        assert state.phase is CalibrationPhase.SOLVING
        state.begin_rectifying(intrinsics, rectification_map)
        assert state.snapshot() == (CalibrationPhase.RECTIFYING, rectification_map)
        assert state.intrinsics is intrinsics

        state.reset()
        assert state.phase is CalibrationPhase.IDLE
        # パラメータは保持される
        assert state.rectification_map is rectification_map

    def test_solve_from_stored_corners(self):
        """IDLEから直接SOLVINGへ遷移できる"""
        state = CalibrationState()
        state.begin_solving()
        assert state.phase is CalibrationPhase.SOLVING

    def test_rectify_from_loaded_parameters(self, intrinsics):
        """IDLEから直接RECTIFYINGへ遷移できる"""
        state = CalibrationState()
        state.begin_rectifying(intrinsics, MagicMock())
        assert state.phase is CalibrationPhase.RECTIFYING

    @pytest.mark.parametrize(
        "setup,action",
        [
            (["begin_accumulation"], "begin_accumulation"),
            (["begin_accumulation"], "reset"),
            (["begin_solving"], "begin_accumulation"),
            (["begin_solving"], "begin_solving"),
            (["begin_accumulation", "begin_solving"], "reset"),
        ],
    )
    def test_invalid_transitions(self, setup, action):
        state = CalibrationState()
        for name in setup:
            getattr(state, name)()
        before = state.phase

        with pytest.raises(InvalidStateTransition):
            getattr(state, action)()
        assert state.phase is before

    def test_rectifying_from_accumulating_rejected(self, intrinsics):
        """ACCUMULATING中にパラメータは差し替えられない"""
        state = CalibrationState()
        state.begin_accumulation()

        with pytest.raises(InvalidStateTransition):
            state.begin_rectifying(intrinsics, MagicMock())
        assert state.intrinsics is None

    @pytest.mark.parametrize("setup", [[], ["begin_accumulation"], ["begin_solving"]])
    def test_abort(self, setup):
        """任意の状態からIDLEへ戻れる"""
        state = CalibrationState()
        for name in setup:
            getattr(state, name)()

        state.abort()
        assert state.phase is CalibrationPhase.IDLE

    def test_concurrent_reads_see_complete_maps(self, intrinsics):
        """差し替え中も参照側は完全なテーブルのどちらかを得る"""
        state = CalibrationState()
        maps = [MagicMock(name=f"map{i}") for i in range(50)]
        seen = []

        def reader():
            for _ in range(200):
                seen.append(state.snapshot()[1])

        thread = threading.Thread(target=reader)
        thread.start()
        for rectification_map in maps:
            state.begin_rectifying(intrinsics, rectification_map)
            state.reset()
        thread.join()

        assert all(item is None or item in maps for item in seen)
