"""Voice logger settings resolved from the environment."""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class VoiceLogSettings(BaseModel):
    whisper_model: str = Field(default=os.getenv("VOICELOG_MODEL", "tiny.en"))
    whisper_device: str = Field(default=os.getenv("VOICELOG_DEVICE", "cpu"))
    whisper_compute_type: str = Field(
        default=os.getenv("VOICELOG_COMPUTE_TYPE", "int8")
    )
    whisper_mock_transcriber: bool = Field(default=_flag("VOICELOG_ENGINE_MOCK", "false"))
    model_cache_dir: str | None = Field(default=os.getenv("VOICELOG_MODEL_CACHE_DIR"))
    beam_size: int = Field(default=int(os.getenv("VOICELOG_BEAM_SIZE", "5")))
    chunk_length: int = Field(default=int(os.getenv("VOICELOG_CHUNK_LENGTH", "25")))
    vad_filter: bool = Field(default=_flag("VOICELOG_VAD_FILTER", "false"))
    language: str = Field(default=os.getenv("VOICELOG_LANGUAGE", "english"))
    target_sample_rate: int = Field(
        default=int(os.getenv("VOICELOG_TARGET_SAMPLE_RATE", "16000")), gt=0
    )
    energy_gate: bool = Field(default=_flag("VOICELOG_ENERGY_GATE", "true"))
    min_rms: float = Field(default=float(os.getenv("VOICELOG_MIN_RMS", "0.0005")), ge=0.0)
    timeslice_sec: float = Field(
        default=float(os.getenv("VOICELOG_TIMESLICE_SEC", "1.0")), gt=0.0
    )


@lru_cache()
def get_settings() -> VoiceLogSettings:
    return VoiceLogSettings()
