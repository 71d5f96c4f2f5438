"""Speech model worker and request correlation."""

from .client import InferenceEngine
from .correlator import RequestCorrelator

__all__ = ["InferenceEngine", "RequestCorrelator"]
