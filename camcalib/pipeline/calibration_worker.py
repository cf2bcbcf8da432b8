"""Background worker running accumulate -> solve -> derive-map."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from queue import Queue
import threading
from typing import TYPE_CHECKING, Any

import cv2

from camcalib.calibration.calibration_session import CalibrationSession
from camcalib.calibration.camera_calibrator import CameraCalibrator
from camcalib.calibration.rectification import RectificationMap
from camcalib.core.exceptions import CalibrationCancelled, CalibrationError

if TYPE_CHECKING:
    import numpy as np

    from camcalib.calibration.state import CalibrationState
    from camcalib.core.interfaces import CornerDetectorPort, FrameProviderPort
    from camcalib.models.data_models import CalibrationResult, PatternGeometry
    from camcalib.storage import CornerStore, ParameterStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkerMessage:
    """ワーカーから表示側へ渡すメッセージ

    kind:
        progress: スロット確定 (payload: (確定数, 総数))
        snapshot: 確定時のネガ画像 (payload: (確定数, 画像))
        result: キャリブレーション結果 (payload: CalibrationResult)
        error: 失敗 (payload: 例外)
        cancelled: キャンセル
        done: 処理終了（必ず最後に1回）
    """

    kind: str
    text: str = ""
    payload: Any = None


class CalibrationWorker:
    """キャリブレーションワーカー

    フレーム供給経路とは別スレッドで、コーナー蓄積・対応点保存・ソルブ・
    パラメータ保存・リマップテーブル生成を順に実行する。
    結果は状態オブジェクトとメッセージキューを通してのみ外部へ渡す。
    """

    def __init__(
        self,
        pattern: PatternGeometry,
        n_images: int,
        image_size: tuple[int, int],
        state: CalibrationState,
        frames: FrameProviderPort,
        corner_store: CornerStore,
        parameter_store: ParameterStore,
        messages: Queue | None = None,
        use_stored_corners: bool = False,
        debounce_frames: int = CalibrationSession.DEFAULT_DEBOUNCE_FRAMES,
        capture_pause_seconds: float = CalibrationSession.DEFAULT_CAPTURE_PAUSE_SECONDS,
        max_failures_per_slot: int | None = None,
        draw_overlay: bool = True,
        detector: CornerDetectorPort | None = None,
        calibrator: CameraCalibrator | None = None,
    ):
        self.pattern = pattern
        self.n_images = n_images
        self.image_size = image_size
        self.state = state
        self.frames = frames
        self.corner_store = corner_store
        self.parameter_store = parameter_store
        self.messages: Queue = messages if messages is not None else Queue()
        self.use_stored_corners = use_stored_corners
        self.debounce_frames = debounce_frames
        self.capture_pause_seconds = capture_pause_seconds
        self.max_failures_per_slot = max_failures_per_slot
        self.draw_overlay = draw_overlay
        self.detector = detector
        self.calibrator = calibrator or CameraCalibrator()

        self.cancel_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """ワーカースレッドを開始する"""
        if self.is_alive():
            raise RuntimeError("ワーカーは既に実行中です")
        self.cancel_event.clear()
        self._thread = threading.Thread(target=self.run, name="calibration-worker", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        """キャンセルを要求する（次のフレーム処理の前に反映される）"""
        logger.info("キャリブレーションのキャンセルを要求しました")
        self.cancel_event.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self) -> CalibrationResult | None:
        """一連の処理を実行する（start() から別スレッドで呼ばれる）

        Returns:
            キャリブレーション結果。失敗・キャンセル時はNone
        """
        try:
            return self._run()
        except CalibrationCancelled as e:
            self.state.abort()
            self._post("cancelled", str(e))
        except (CalibrationError, cv2.error, FileNotFoundError, OSError, ValueError) as e:
            self.state.abort()
            logger.error(f"キャリブレーションに失敗しました: {e}")
            self._post("error", str(e), e)
        finally:
            self._post("done")
        return None

    def _run(self) -> CalibrationResult:
        if self.use_stored_corners:
            correspondences = self.corner_store.load(self.pattern, self.n_images)
        else:
            self.state.begin_accumulation()
            session = CalibrationSession(
                self.pattern,
                self.n_images,
                detector=self.detector,
                debounce_frames=self.debounce_frames,
                capture_pause_seconds=self.capture_pause_seconds,
                cancel_event=self.cancel_event,
                max_failures_per_slot=self.max_failures_per_slot,
                draw_overlay=self.draw_overlay,
                on_accept=self._on_accept,
                on_snapshot=self._on_snapshot,
            )
            correspondences = session.accumulate(self.frames)
            self.corner_store.save(correspondences)

        self.state.begin_solving()
        result = self.calibrator.calibrate(correspondences, self.image_size)
        rectification_map = RectificationMap.build(result.intrinsics, self.image_size)

        if self.cancel_event.is_set():
            raise CalibrationCancelled("ソルブ完了後にキャンセルされました")

        self.parameter_store.save(result.intrinsics)
        self.state.begin_rectifying(result.intrinsics, rectification_map)

        self._post("result", f"reprojection error: {result.reprojection_error:.4f}", result)
        return result

    def _on_accept(self, accepted: int, total: int) -> None:
        self._post("progress", f"{accepted}th image", (accepted, total))

    def _on_snapshot(self, accepted: int, image: np.ndarray) -> None:
        self._post("snapshot", f"{accepted}th image", (accepted, image))

    def _post(self, kind: str, text: str = "", payload: Any = None) -> None:
        self.messages.put(WorkerMessage(kind=kind, text=text, payload=payload))
