"""Utility modules for the camera calibration tool."""

from camcalib.utils.image_utils import draw_status_text, negative_image, save_snapshot_image, to_gray
from camcalib.utils.logging_utils import setup_logging

__all__ = [
    "draw_status_text",
    "negative_image",
    "save_snapshot_image",
    "setup_logging",
    "to_gray",
]
