"""Camera Calibration Tool

Chessboard-based single camera calibration and live undistortion.
"""

__version__ = "0.1.0"

from camcalib.calibration import (
    CalibrationSession,
    CalibrationState,
    CameraCalibrator,
    CornerDetector,
    CorrespondenceSet,
    IntrinsicParameters,
    RectificationMap,
)
from camcalib.config import ConfigManager
from camcalib.models import CalibrationResult, PatternGeometry

__all__ = [
    "CalibrationResult",
    "CalibrationSession",
    "CalibrationState",
    "CameraCalibrator",
    "ConfigManager",
    "CornerDetector",
    "CorrespondenceSet",
    "IntrinsicParameters",
    "PatternGeometry",
    "RectificationMap",
]
