"""Frame acquisition for calibration and live display."""

from camcalib.video.frame_source import CameraFrameSource, ImageSequenceFrameSource, LatestFrameBuffer

__all__ = [
    "CameraFrameSource",
    "ImageSequenceFrameSource",
    "LatestFrameBuffer",
]
