"""Data models for the camera calibration pipeline."""

from camcalib.models.data_models import (
    CalibrationResult,
    ExtrinsicParameters,
    PatternGeometry,
    TerminationCriteria,
)

__all__ = [
    "CalibrationResult",
    "ExtrinsicParameters",
    "PatternGeometry",
    "TerminationCriteria",
]
