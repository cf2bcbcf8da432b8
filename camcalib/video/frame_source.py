"""Frame acquisition from a camera device or a numbered image sequence."""

from __future__ import annotations

import logging
from pathlib import Path
import threading

import cv2
import numpy as np

from camcalib.core.exceptions import DeviceUnavailable
from camcalib.utils.image_utils import to_gray

logger = logging.getLogger(__name__)


class CameraFrameSource:
    """カメラ入力クラス

    カメラデバイスのオープン、フレーム取得、リソース解放を担当する。

    Attributes:
        device_index: カメラデバイス番号
        width: 要求する画像の幅
        height: 要求する画像の高さ
        cap: OpenCVのVideoCaptureオブジェクト
        frame_size: open() 後にカメラが実際に返す解像度 (width, height)
    """

    def __init__(self, device_index: int = 0, width: int = 640, height: int = 480):
        self.device_index = device_index
        self.width = width
        self.height = height
        self.cap: cv2.VideoCapture | None = None
        self.frame_size: tuple[int, int] = (width, height)

    def open(self) -> bool:
        """カメラを開く

        Returns:
            成功した場合True

        Raises:
            DeviceUnavailable: カメラを開けなかった場合
        """
        try:
            self.cap = cv2.VideoCapture(self.device_index)
        except cv2.error as e:
            raise DeviceUnavailable(f"カメラを開けませんでした: device={self.device_index}: {e}") from e

        if not self.cap.isOpened():
            self.cap.release()
            self.cap = None
            error_msg = f"カメラを開けませんでした: device={self.device_index}"
            logger.error(error_msg)
            raise DeviceUnavailable(error_msg)

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)

        # 解像度を返さないバックエンドでは要求値を使う
        actual_width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)) or self.width
        actual_height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)) or self.height
        if (actual_width, actual_height) != (self.width, self.height):
            logger.warning(
                f"カメラ解像度が要求と異なります: {actual_width}x{actual_height} (要求: {self.width}x{self.height})"
            )
        self.frame_size = (actual_width, actual_height)

        logger.info(f"カメラを開きました: device={self.device_index}, 解像度 {actual_width}x{actual_height}")
        return True

    def read(self) -> np.ndarray | None:
        """1フレームをグレースケールで取得する

        Returns:
            グレースケール画像。取得できなかった場合None

        Raises:
            RuntimeError: カメラが開かれていない場合
        """
        if self.cap is None or not self.cap.isOpened():
            raise RuntimeError("カメラが開かれていません。先にopen()を呼び出してください。")

        ret, frame = self.cap.read()
        if not ret or frame is None:
            logger.debug("フレームの取得に失敗しました")
            return None
        return to_gray(frame)

    def release(self) -> None:
        """リソースを解放する"""
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.info("カメラを解放しました")

    def __enter__(self) -> CameraFrameSource:
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


class ImageSequenceFrameSource:
    """連番画像ファイル（left1.bmp, left2.bmp, ...）からフレームを供給する

    スロット番号に対応するファイルを毎回読み込む。
    """

    DEFAULT_TEMPLATE = "left{n}.bmp"

    def __init__(self, directory: str | Path = ".", template: str = DEFAULT_TEMPLATE):
        self.directory = Path(directory)
        self.template = template

    def path_for(self, slot: int) -> Path:
        return self.directory / self.template.format(n=slot)

    def next_frame(self, slot: int) -> np.ndarray:
        """スロット番号（1始まり）の画像をグレースケールで読み込む

        Raises:
            FileNotFoundError: ファイルが存在しない、または読み込めない場合
        """
        path = self.path_for(slot)
        if not path.exists():
            raise FileNotFoundError(f"画像ファイルが見つかりません: {path}")

        image = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
        if image is None:
            raise FileNotFoundError(f"画像ファイルを読み込めませんでした: {path}")
        return image


class LatestFrameBuffer:
    """最新フレームを1枚だけ保持するバッファ

    フレーム処理コールバックが put() し、キャリブレーションワーカーが next_frame() で
    まだ処理していない新しいフレームを待って取り出す。put() は待機しない。
    """

    def __init__(self, timeout_seconds: float = 0.1):
        self.timeout_seconds = timeout_seconds
        self._condition = threading.Condition()
        self._frame: np.ndarray | None = None
        self._sequence = 0
        self._consumed = 0

    @property
    def sequence(self) -> int:
        with self._condition:
            return self._sequence

    def put(self, frame: np.ndarray) -> None:
        with self._condition:
            self._frame = frame.copy()
            self._sequence += 1
            self._condition.notify_all()

    def latest(self) -> np.ndarray | None:
        """最新フレームのコピー（未到着ならNone）"""
        with self._condition:
            return None if self._frame is None else self._frame.copy()

    def next_frame(self, slot: int) -> np.ndarray | None:
        """前回取り出した後に届いたフレームを返す。タイムアウト時はNone"""
        with self._condition:
            arrived = self._condition.wait_for(lambda: self._sequence > self._consumed, timeout=self.timeout_seconds)
            if not arrived or self._frame is None:
                return None
            self._consumed = self._sequence
            return self._frame.copy()
