"""Dataclasses shared across audio helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import numpy as np

from ..errors import BufferDetachedError


@dataclass(frozen=True, slots=True)
class Encoding:
    """A container/codec pair libsndfile can write, tagged with its media type."""

    media_type: str
    format: str
    subtype: str
    extension: str


@dataclass(frozen=True, slots=True)
class CaptureConstraints:
    """Microphone request. There is deliberately no sample-rate field."""

    channel_count: int = 1
    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True


@dataclass(frozen=True, slots=True)
class AudioArtifact:
    """Finalized recording produced by one capture session."""

    data: bytes
    media_type: str
    sample_rate: int
    duration: float
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __len__(self) -> int:
        return len(self.data)


class SampleBuffer:
    """Mono float32 PCM at a known sample rate.

    Ownership of the underlying array can be moved with :meth:`transfer`; the
    source buffer is detached afterwards and refuses further reads.
    """

    __slots__ = ("_samples", "sample_rate")

    def __init__(self, samples: np.ndarray, sample_rate: int) -> None:
        self._samples: Optional[np.ndarray] = np.asarray(samples, dtype=np.float32)
        self.sample_rate = int(sample_rate)

    @property
    def samples(self) -> np.ndarray:
        if self._samples is None:
            raise BufferDetachedError("sample buffer storage was transferred")
        return self._samples

    @property
    def detached(self) -> bool:
        return self._samples is None

    @property
    def duration(self) -> float:
        return len(self.samples) / float(self.sample_rate)

    def transfer(self) -> "SampleBuffer":
        moved = SampleBuffer.__new__(SampleBuffer)
        moved._samples = self.samples
        moved.sample_rate = self.sample_rate
        self._samples = None
        return moved

    def __len__(self) -> int:
        return len(self.samples)

    def __repr__(self) -> str:
        size = "detached" if self._samples is None else f"{len(self._samples)} samples"
        return f"SampleBuffer({size} @ {self.sample_rate} Hz)"


__all__ = ["AudioArtifact", "CaptureConstraints", "Encoding", "SampleBuffer"]
