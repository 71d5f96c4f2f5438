"""On-device voice capture and transcription core."""

from .audio.types import AudioArtifact, SampleBuffer
from .errors import (
    CaptureBusyError,
    CaptureError,
    DecodeError,
    EncodingUnsupportedError,
    EngineConstructionError,
    EngineCrashError,
    InferenceError,
    MicrophonePermissionError,
    TranscriptionError,
    VoiceLogError,
)
from .settings import VoiceLogSettings, get_settings
from .voice_logger import Recording, VoiceLogger

__all__ = [
    "AudioArtifact",
    "CaptureBusyError",
    "CaptureError",
    "DecodeError",
    "EncodingUnsupportedError",
    "EngineConstructionError",
    "EngineCrashError",
    "InferenceError",
    "MicrophonePermissionError",
    "Recording",
    "SampleBuffer",
    "TranscriptionError",
    "VoiceLogError",
    "VoiceLogSettings",
    "VoiceLogger",
    "get_settings",
]
