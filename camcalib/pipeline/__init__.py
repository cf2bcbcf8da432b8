"""Calibration worker and live display pipeline."""

from camcalib.pipeline.calibration_worker import CalibrationWorker, WorkerMessage
from camcalib.pipeline.live_view import LiveView

__all__ = [
    "CalibrationWorker",
    "LiveView",
    "WorkerMessage",
]
