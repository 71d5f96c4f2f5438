"""Linear-interpolation resampling for decoded PCM."""

from __future__ import annotations

import math

import numpy as np


def resampled_length(length: int, source_rate: int, target_rate: int) -> int:
    return int(math.floor(length * target_rate / source_rate + 0.5))


def resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Resample ``samples`` from ``source_rate`` to ``target_rate``.

    Platform decoders do not reliably honour a requested output rate, so audio
    is always decoded at its native rate and converted here. The right-hand
    neighbour of the final sample repeats that sample, so a constant signal
    stays constant all the way to the end of the buffer.
    """
    if source_rate <= 0 or target_rate <= 0:
        raise ValueError(f"sample rates must be positive (got {source_rate} -> {target_rate})")
    if source_rate == target_rate:
        return samples
    data = np.asarray(samples, dtype=np.float32)
    length = resampled_length(len(data), source_rate, target_rate)
    if length == 0 or data.size == 0:
        return np.zeros(length, dtype=np.float32)
    ratio = source_rate / target_rate
    positions = np.arange(length, dtype=np.float64) * ratio
    index = np.minimum(np.floor(positions).astype(np.int64), len(data) - 1)
    frac = positions - index
    padded = np.append(data, data[-1]).astype(np.float64)
    left = padded[index]
    right = padded[index + 1]
    return (left + frac * (right - left)).astype(np.float32)


__all__ = ["resample", "resampled_length"]
