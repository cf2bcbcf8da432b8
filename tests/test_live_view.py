"""Unit tests for LiveView."""

from __future__ import annotations

import numpy as np
import pytest

from camcalib.calibration.intrinsics import DistortionParams, IntrinsicParameters
from camcalib.calibration.rectification import RectificationMap
from camcalib.calibration.state import CalibrationPhase, CalibrationState
from camcalib.core.exceptions import StoreFormatError
from camcalib.pipeline.live_view import LiveView
from camcalib.storage import ParameterStore


@pytest.fixture
def distorting_intrinsics() -> IntrinsicParameters:
    return IntrinsicParameters.from_focal(400, 400, 320, 240, DistortionParams(k1=0.8))


@pytest.fixture
def frame(image_size) -> np.ndarray:
    return np.full((image_size[1], image_size[0], 3), 200, dtype=np.uint8)


class TestLiveView:
    """LiveViewのテスト"""

    def test_passthrough_when_idle(self, frame):
        """IDLE状態ではグレースケール画像をそのまま返す"""
        live_view = LiveView(CalibrationState())

        output = live_view.process_frame(frame)

        assert output.shape == frame.shape[:2]
        assert np.all(output == 200)

    def test_frame_published_to_buffer(self, frame):
        live_view = LiveView(CalibrationState())
        live_view.process_frame(frame)

        assert live_view.buffer.sequence == 1
        assert live_view.buffer.latest().shape == frame.shape[:2]

    def test_rectifies_when_rectifying(self, frame, image_size, distorting_intrinsics):
        """RECTIFYING状態では補正済み画像を返す"""
        state = CalibrationState()
        state.begin_rectifying(distorting_intrinsics, RectificationMap.build(distorting_intrinsics, image_size))
        live_view = LiveView(state)

        output = live_view.process_frame(frame)

        assert output[0, 0] == 0
        assert output[240, 320] == 200

    def test_reset_disables_rectification(self, frame, image_size, distorting_intrinsics):
        state = CalibrationState()
        state.begin_rectifying(distorting_intrinsics, RectificationMap.build(distorting_intrinsics, image_size))
        state.reset()

        assert LiveView(state).process_frame(frame)[0, 0] == 200

    def test_load_parameters_and_rectify(self, tmp_path, image_size, distorting_intrinsics):
        """パラメータファイルを読み込むと補正表示に切り替わる"""
        path = tmp_path / "Intrinsic.xml"
        ParameterStore(path).save(distorting_intrinsics)
        state = CalibrationState()

        intrinsics = LiveView(state).load_parameters_and_rectify(path, image_size)

        assert state.phase is CalibrationPhase.RECTIFYING
        assert intrinsics.fx == 400
        assert state.rectification_map.image_size == image_size

    def test_load_failure_keeps_state(self, tmp_path, image_size):
        """読み込みに失敗しても状態は変わらない"""
        path = tmp_path / "Intrinsic.xml"
        path.write_text("<opencv_storage><matrix_left/></opencv_storage>")
        state = CalibrationState()

        with pytest.raises(StoreFormatError):
            LiveView(state).load_parameters_and_rectify(path, image_size)

        assert state.phase is CalibrationPhase.IDLE
        assert state.intrinsics is None

    def test_size_mismatch_passes_through(self, image_size, distorting_intrinsics):
        """リマップテーブルと異なるサイズのフレームは補正せずに返す"""
        state = CalibrationState()
        state.begin_rectifying(distorting_intrinsics, RectificationMap.build(distorting_intrinsics, image_size))
        live_view = LiveView(state)
        frame = np.full((720, 1280), 200, dtype=np.uint8)

        output = live_view.process_frame(frame)
        live_view.process_frame(frame)

        assert output.shape == (720, 1280)
        assert np.all(output == 200)
