"""Per-frame display callback with optional undistortion."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from camcalib.calibration.rectification import RectificationMap
from camcalib.calibration.state import CalibrationPhase
from camcalib.storage import ParameterStore
from camcalib.utils.image_utils import to_gray
from camcalib.video.frame_source import LatestFrameBuffer

if TYPE_CHECKING:
    from pathlib import Path

    import numpy as np

    from camcalib.calibration.intrinsics import IntrinsicParameters
    from camcalib.calibration.state import CalibrationState

logger = logging.getLogger(__name__)


class LiveView:
    """ライブ映像の表示処理

    process_frame() はフレームごとに呼ばれ、決して待機しない。
    RECTIFYING 状態では現在のリマップテーブルで補正した画像を返す。
    """

    def __init__(self, state: CalibrationState, buffer: LatestFrameBuffer | None = None):
        self.state = state
        self.buffer = buffer or LatestFrameBuffer()
        self._size_warned = False

    def process_frame(self, frame: np.ndarray) -> np.ndarray:
        """1フレームを処理して表示用画像を返す

        フレームサイズがリマップテーブルと異なる場合は補正せずにそのまま返す。

        Args:
            frame: カメラから取得したフレーム

        Returns:
            表示用のグレースケール画像
        """
        gray = to_gray(frame)
        self.buffer.put(gray)

        phase, rectification_map = self.state.snapshot()
        if phase is not CalibrationPhase.RECTIFYING or rectification_map is None:
            return gray

        height, width = gray.shape[:2]
        if (width, height) != rectification_map.image_size:
            if not self._size_warned:
                logger.warning(
                    f"フレームサイズがリマップテーブルと異なるため補正を省略します: "
                    f"{width}x{height} != {rectification_map.image_size}"
                )
                self._size_warned = True
            return gray
        return rectification_map.apply(gray)

    def load_parameters_and_rectify(self, path: str | Path, image_size: tuple[int, int]) -> IntrinsicParameters:
        """パラメータファイルを読み込んで補正表示を開始する

        読み込みに失敗した場合、現在の状態は変更しない。

        Raises:
            FileNotFoundError: ファイルが存在しない場合
            StoreFormatError: ファイルの形式が不正な場合
        """
        intrinsics = ParameterStore(path).load()
        rectification_map = RectificationMap.build(intrinsics, image_size)
        self.state.begin_rectifying(intrinsics, rectification_map)

        logger.info(f"補正表示を開始しました: {intrinsics.summary()}")
        return intrinsics
