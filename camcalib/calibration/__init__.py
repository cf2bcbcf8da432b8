"""Camera calibration module."""

from camcalib.calibration.calibration_session import CalibrationSession, FrameOutcome
from camcalib.calibration.camera_calibrator import CameraCalibrator
from camcalib.calibration.corner_detector import CornerDetector
from camcalib.calibration.correspondence import CorrespondenceSet
from camcalib.calibration.intrinsics import DistortionParams, IntrinsicParameters
from camcalib.calibration.pattern_model import board_points, generate_object_points
from camcalib.calibration.rectification import RectificationMap
from camcalib.calibration.reprojection_error import ReprojectionErrorEvaluator
from camcalib.calibration.state import CalibrationPhase, CalibrationState

__all__ = [
    "CalibrationPhase",
    "CalibrationSession",
    "CalibrationState",
    "CameraCalibrator",
    "CornerDetector",
    "CorrespondenceSet",
    "DistortionParams",
    "FrameOutcome",
    "IntrinsicParameters",
    "RectificationMap",
    "ReprojectionErrorEvaluator",
    "board_points",
    "generate_object_points",
]
