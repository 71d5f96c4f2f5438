"""Lightweight noise suppression for float PCM (high-pass + noise-floor gate)."""

from __future__ import annotations

from typing import Optional

import numpy as np


class NoiseReducer:
    """Applies a simple high-pass + noise gate to streamed PCM blocks.

    The gate works on 20 ms frames. It tracks the quietest recent frame level
    as the noise floor (drops immediately, rises slowly) and attenuates only
    frames that are both quiet in absolute terms and close to that floor.
    Filter state carries over between calls so consecutive microphone blocks
    are processed as one continuous signal.
    """

    def __init__(
        self,
        sample_rate: int,
        cutoff_hz: float = 120.0,
        floor_rise: float = 0.002,
        gate_ratio: float = 2.0,
        gate_ceiling: float = 0.01,
        attenuation: float = 0.1,
        floor: float = 60.0 / 32768.0,
    ) -> None:
        self.sample_rate = sample_rate
        self.cutoff = max(10.0, float(cutoff_hz))
        self.floor_rise = max(0.0, min(float(floor_rise), 1.0))
        self.gate_ratio = max(1.0, float(gate_ratio))
        self.gate_ceiling = max(0.0, float(gate_ceiling))
        self.attenuation = max(0.0, min(float(attenuation), 1.0))
        self.floor = max(0.0, float(floor))
        self.frame = max(64, int(sample_rate * 0.02))
        self._prev_input = 0.0
        self._prev_output = 0.0
        self._noise_floor: Optional[float] = None
        self._warmup = int(sample_rate * 0.01)

    @property
    def noise_floor(self) -> Optional[float]:
        return self._noise_floor

    def apply(self, pcm: np.ndarray) -> np.ndarray:
        if pcm.size == 0:
            return pcm
        filtered = self._high_pass(pcm.astype(np.float32, copy=False))
        gated = self._noise_gate(filtered)
        gated[np.abs(gated) < self.floor] = 0.0
        if self._warmup:
            span = min(len(gated), self._warmup)
            gated[:span] = 0.0
            self._warmup -= span
        return gated

    def _high_pass(self, data: np.ndarray) -> np.ndarray:
        rc = 1.0 / (2 * np.pi * self.cutoff)
        dt = 1.0 / self.sample_rate
        alpha = rc / (rc + dt)
        output = np.empty_like(data)
        prev_in = self._prev_input
        prev_out = self._prev_output
        for idx, sample in enumerate(data):
            out = alpha * (prev_out + sample - prev_in)
            output[idx] = out
            prev_out = out
            prev_in = sample
        self._prev_input = float(prev_in)
        self._prev_output = float(prev_out)
        return output

    def _noise_gate(self, data: np.ndarray) -> np.ndarray:
        output = data.copy()
        for start in range(0, len(data), self.frame):
            segment = output[start : start + self.frame]
            level = float(np.sqrt(np.mean(segment.astype(np.float64) ** 2)))
            if self._noise_floor is None or level < self._noise_floor:
                self._noise_floor = level
            else:
                self._noise_floor += (level - self._noise_floor) * self.floor_rise
            if level < self.gate_ceiling and level <= self._noise_floor * self.gate_ratio:
                segment *= self.attenuation
        return output


__all__ = ["NoiseReducer"]
