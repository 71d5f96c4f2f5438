"""Audio capture and signal helpers."""

from .energy import MIN_RMS_THRESHOLD, compute_rms, is_silent
from .resample import resample

__all__ = ["MIN_RMS_THRESHOLD", "compute_rms", "is_silent", "resample"]
