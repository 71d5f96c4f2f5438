"""Signal energy helpers used to skip near-silent clips."""

from __future__ import annotations

import numpy as np

# Near-silent clips make Whisper emit "no speech" placeholders; skip them locally.
MIN_RMS_THRESHOLD = 0.0005


def compute_rms(samples: np.ndarray) -> float:
    data = np.asarray(samples, dtype=np.float64)
    if data.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(data ** 2)))


def is_silent(samples: np.ndarray, threshold: float = MIN_RMS_THRESHOLD) -> bool:
    return compute_rms(samples) < threshold


__all__ = ["MIN_RMS_THRESHOLD", "compute_rms", "is_silent"]
