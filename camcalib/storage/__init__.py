"""Persisted corner and parameter stores."""

from camcalib.storage.corner_store import CornerStore
from camcalib.storage.parameter_store import ParameterStore

__all__ = ["CornerStore", "ParameterStore"]
