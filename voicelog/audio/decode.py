"""Decode recorded artifacts into model-ready PCM."""

from __future__ import annotations

import io
import logging
from typing import Optional

import numpy as np
import soundfile as sf

from ..errors import DecodeError
from ..settings import VoiceLogSettings
from .energy import MIN_RMS_THRESHOLD, compute_rms
from .resample import resample
from .types import AudioArtifact, SampleBuffer

LOGGER = logging.getLogger("voicelog.decode")


class AudioDecoder:
    """Artifact -> native-rate PCM -> channel 0 -> target rate -> optional energy gate."""

    def __init__(
        self,
        target_sample_rate: int = 16_000,
        *,
        energy_gate: bool = True,
        min_rms: float = MIN_RMS_THRESHOLD,
    ) -> None:
        if target_sample_rate <= 0:
            raise ValueError("target_sample_rate must be positive")
        self.target_sample_rate = target_sample_rate
        self.energy_gate = energy_gate
        self.min_rms = min_rms

    @classmethod
    def from_settings(cls, settings: VoiceLogSettings) -> "AudioDecoder":
        return cls(
            settings.target_sample_rate,
            energy_gate=settings.energy_gate,
            min_rms=settings.min_rms,
        )

    def decode(self, artifact: AudioArtifact) -> SampleBuffer:
        """Decode at whatever rate the container holds; never assume 16 kHz."""
        if not artifact.data:
            raise DecodeError("Audio decode failed (empty recording)")
        try:
            with sf.SoundFile(io.BytesIO(artifact.data)) as handle:
                native_rate = handle.samplerate
                frames = handle.read(dtype="float32", always_2d=True)
        except (sf.LibsndfileError, TypeError, ValueError) as exc:
            raise DecodeError(
                f"Audio decode failed for {artifact.media_type} ({exc}). "
                "Try recording again or check codec support."
            ) from exc
        mono = np.ascontiguousarray(frames[:, 0]) if frames.size else np.zeros(0, dtype=np.float32)
        return SampleBuffer(mono, native_rate)

    def prepare(self, artifact: AudioArtifact) -> Optional[SampleBuffer]:
        """Return model-ready samples, or ``None`` when the clip is too quiet to transcribe."""
        decoded = self.decode(artifact)
        samples = resample(decoded.samples, decoded.sample_rate, self.target_sample_rate)
        if self.energy_gate:
            rms = compute_rms(samples)
            LOGGER.debug("Audio RMS: %.5f (threshold: %s)", rms, self.min_rms)
            if rms < self.min_rms:
                LOGGER.warning("Audio energy below threshold; skipping transcription")
                return None
        return SampleBuffer(samples, self.target_sample_rate)


__all__ = ["AudioDecoder"]
