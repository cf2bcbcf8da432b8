"""Corner accumulation across frames with temporal de-duplication."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
import logging
import threading
from typing import TYPE_CHECKING

from camcalib.calibration.corner_detector import CornerDetector
from camcalib.calibration.correspondence import CorrespondenceSet
from camcalib.core.exceptions import CalibrationCancelled, ConfigurationInvalid, InsufficientDetections
from camcalib.utils.image_utils import negative_image, to_gray

if TYPE_CHECKING:
    import numpy as np

    from camcalib.core.interfaces import CornerDetectorPort, FrameProviderPort
    from camcalib.models.data_models import PatternGeometry

logger = logging.getLogger(__name__)


class FrameOutcome(Enum):
    """1フレーム処理の結果"""

    MISSED = "missed"
    STABILIZING = "stabilizing"
    ACCEPTED = "accepted"


class CalibrationSession:
    """コーナー蓄積セッション

    フレームごとにコーナー検出を行い、同じボード位置で連続して
    `debounce_frames` 回を超えて検出に成功したときだけ、その検出結果を次のスロットにコミットする。
    検出に失敗すると連続成功カウントは0に戻る。

    キャンセルはフレームを1枚処理するごとに確認し、スロットは必ず丸ごとコミットされるか、
    まったくコミットされないかのどちらかになる。

    Attributes:
        correspondences: 蓄積中の対応点
        consecutive_success_count: 現在のスロットでの連続検出成功数
        consecutive_failure_count: 現在のスロットでの連続検出失敗数
    """

    DEFAULT_DEBOUNCE_FRAMES = 6
    DEFAULT_CAPTURE_PAUSE_SECONDS = 1.0

    def __init__(
        self,
        pattern: PatternGeometry,
        n_images: int,
        detector: CornerDetectorPort | None = None,
        debounce_frames: int = DEFAULT_DEBOUNCE_FRAMES,
        capture_pause_seconds: float = DEFAULT_CAPTURE_PAUSE_SECONDS,
        cancel_event: threading.Event | None = None,
        max_failures_per_slot: int | None = None,
        draw_overlay: bool = False,
        on_accept: Callable[[int, int], None] | None = None,
        on_snapshot: Callable[[int, np.ndarray], None] | None = None,
        idle_wait_seconds: float = 0.01,
    ):
        """CalibrationSessionを初期化

        Args:
            pattern: チェスボードのパターン幾何情報
            n_images: 蓄積する画像枚数
            detector: コーナー検出器（省略時はCornerDetector）
            debounce_frames: コミットに必要な連続成功数の閾値（この値を超えたらコミット）
            capture_pause_seconds: スロット確定後の待機時間 [秒]
            cancel_event: キャンセル通知用イベント
            max_failures_per_slot: 1スロットで許容する連続失敗数（Noneなら無制限）
            draw_overlay: スナップショットに検出グリッドを描画するか
            on_accept: スロット確定時のコールバック (確定数, 総数)
            on_snapshot: スロット確定時のネガ画像コールバック (確定数, 画像)
            idle_wait_seconds: フレーム未到着時の待機時間 [秒]

        Raises:
            ConfigurationInvalid: 画像枚数や閾値が不正な場合
        """
        if isinstance(debounce_frames, bool) or not isinstance(debounce_frames, int) or debounce_frames < 0:
            raise ConfigurationInvalid(f"debounce_frames は非負の整数である必要があります: {debounce_frames!r}")
        if capture_pause_seconds < 0:
            raise ConfigurationInvalid(f"capture_pause_seconds は非負である必要があります: {capture_pause_seconds!r}")
        if max_failures_per_slot is not None and max_failures_per_slot <= 0:
            raise ConfigurationInvalid(f"max_failures_per_slot は正の整数である必要があります: {max_failures_per_slot!r}")

        self.pattern = pattern
        self.correspondences = CorrespondenceSet(pattern, n_images)
        self.detector = detector or CornerDetector(pattern)
        self.debounce_frames = debounce_frames
        self.capture_pause_seconds = capture_pause_seconds
        self.cancel_event = cancel_event or threading.Event()
        self.max_failures_per_slot = max_failures_per_slot
        self.draw_overlay = draw_overlay
        self.on_accept = on_accept
        self.on_snapshot = on_snapshot
        self.idle_wait_seconds = idle_wait_seconds

        self.consecutive_success_count = 0
        self.consecutive_failure_count = 0
        self._last_corners: np.ndarray | None = None

    @property
    def n_images(self) -> int:
        return self.correspondences.n_images

    @property
    def accepted_count(self) -> int:
        """確定済みスロット数"""
        return self.correspondences.committed_count

    @property
    def is_complete(self) -> bool:
        return self.correspondences.is_complete

    def feed(self, frame: np.ndarray) -> FrameOutcome:
        """1フレームを処理して連続成功カウントを更新する

        Args:
            frame: 入力フレーム

        Returns:
            処理結果
        """
        if self.is_complete:
            raise RuntimeError("すべてのスロットが確定済みです")

        corners = self.detector.detect(frame)
        if corners is None:
            self.consecutive_success_count = 0
            self.consecutive_failure_count += 1
            return FrameOutcome.MISSED

        self.consecutive_failure_count = 0
        self.consecutive_success_count += 1
        self._last_corners = corners

        if self.consecutive_success_count <= self.debounce_frames:
            return FrameOutcome.STABILIZING

        self.correspondences.commit(corners)
        self.consecutive_success_count = 0
        return FrameOutcome.ACCEPTED

    def accumulate(self, frames: FrameProviderPort) -> CorrespondenceSet:
        """全スロットが確定するまでフレームを処理する

        Args:
            frames: フレーム供給元

        Returns:
            全スロットが確定した対応点

        Raises:
            CalibrationCancelled: キャンセルされた場合
            InsufficientDetections: 1スロットでの連続失敗数が上限に達した場合
        """
        logger.info(
            f"コーナー蓄積を開始します: {self.n_images}枚, パターン {self.pattern.pattern_size}, "
            f"連続成功閾値 {self.debounce_frames}"
        )

        while not self.is_complete:
            self._check_cancelled()

            slot = self.accepted_count + 1
            frame = frames.next_frame(slot)
            if frame is None:
                self.cancel_event.wait(self.idle_wait_seconds)
                continue

            gray = to_gray(frame)
            outcome = self.feed(gray)

            if outcome is FrameOutcome.MISSED:
                if self.max_failures_per_slot and self.consecutive_failure_count >= self.max_failures_per_slot:
                    raise InsufficientDetections(
                        f"スロット {slot} でチェスボードを検出できませんでした "
                        f"（連続失敗 {self.consecutive_failure_count}回）"
                    )
                continue

            if outcome is FrameOutcome.ACCEPTED:
                self._acknowledge(gray)

        self._check_cancelled()
        logger.info(f"コーナー蓄積が完了しました: {self.accepted_count}枚")
        return self.correspondences

    def _acknowledge(self, gray: np.ndarray) -> None:
        accepted = self.accepted_count
        logger.info(f"{accepted}/{self.n_images} 枚目を確定しました")

        if self.on_accept is not None:
            self.on_accept(accepted, self.n_images)

        if self.on_snapshot is not None:
            snapshot = negative_image(gray)
            if self.draw_overlay and self._last_corners is not None and isinstance(self.detector, CornerDetector):
                snapshot = self.detector.draw(snapshot, self._last_corners)
            self.on_snapshot(accepted, snapshot)

        if self.capture_pause_seconds > 0:
            self.cancel_event.wait(self.capture_pause_seconds)

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            logger.info(f"コーナー蓄積をキャンセルしました: {self.accepted_count}/{self.n_images} 枚確定済み")
            raise CalibrationCancelled(f"{self.accepted_count}/{self.n_images} 枚確定時点でキャンセルされました")
