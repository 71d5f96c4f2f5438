"""Exception hierarchy for capture and transcription failures."""

from __future__ import annotations


class VoiceLogError(Exception):
    """Base class for every error raised by the voice logging core."""


class CaptureError(VoiceLogError):
    pass


class MicrophonePermissionError(CaptureError):
    """Microphone access was denied or no input device is present."""


class EncodingUnsupportedError(CaptureError):
    """No acceptable audio encoding is available on this platform."""


class CaptureBusyError(CaptureError):
    """A capture session is already recording on this controller."""


class TranscriptionError(VoiceLogError):
    pass


class DecodeError(TranscriptionError):
    """The recorded artifact could not be decoded into PCM."""


class EngineConstructionError(TranscriptionError):
    """The speech model failed to load; a later request may retry."""


class EngineCrashError(TranscriptionError):
    """The inference worker died while requests were in flight."""


class InferenceError(TranscriptionError):
    """The model raised while transcribing a single request."""


class BufferDetachedError(ValueError):
    """A sample buffer was read after its storage was transferred away."""


__all__ = [
    "BufferDetachedError",
    "CaptureBusyError",
    "CaptureError",
    "DecodeError",
    "EncodingUnsupportedError",
    "EngineConstructionError",
    "EngineCrashError",
    "InferenceError",
    "MicrophonePermissionError",
    "TranscriptionError",
    "VoiceLogError",
]
