"""High-level record-then-transcribe API for note-taking callers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .audio.capture import CaptureController
from .audio.decode import AudioDecoder
from .audio.microphone import MicrophoneBackend
from .audio.types import AudioArtifact
from .engine.client import InferenceEngine
from .engine.model import ModelFactory
from .errors import CaptureError, TranscriptionError
from .metrics import TRANSCRIPTION_COUNTER
from .settings import VoiceLogSettings, get_settings

LOGGER = logging.getLogger("voicelog")

ProgressCallback = Callable[[Dict[str, Any]], None]


@dataclass(slots=True)
class Recording:
    """A finished capture plus the pending transcript for it.

    The artifact is usable on its own even if ``transcript`` later fails.
    """

    artifact: AudioArtifact
    transcript: "asyncio.Task[str]"


class VoiceLogger:
    def __init__(
        self,
        settings: VoiceLogSettings | None = None,
        *,
        microphone: MicrophoneBackend | None = None,
        capture: CaptureController | None = None,
        decoder: AudioDecoder | None = None,
        engine: InferenceEngine | None = None,
        model_factory: Optional[ModelFactory] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.capture = capture or CaptureController(microphone, timeslice=self.settings.timeslice_sec)
        self.decoder = decoder or AudioDecoder.from_settings(self.settings)
        self.engine = engine or InferenceEngine(self.settings, model_factory=model_factory)
        self.engine.add_progress_listener(self._on_engine_progress)
        self.error: str | None = None
        self.model_progress: int | None = None
        self._transcribing = 0
        self._progress_callbacks: List[ProgressCallback] = []

    @property
    def status(self) -> str:
        """One of ``idle``, ``recording``, ``transcribing`` or ``error``."""
        if self.capture.state == "recording":
            return "recording"
        if self._transcribing:
            return "transcribing"
        if self.error or self.capture.state == "error":
            return "error"
        return "idle"

    def on_progress(self, callback: ProgressCallback) -> None:
        self._progress_callbacks.append(callback)

    def start_capture(self) -> None:
        self.error = None
        self.model_progress = None
        try:
            self.capture.start()
        except CaptureError as exc:
            self.error = str(exc)
            raise

    def stop_capture(self) -> AudioArtifact | None:
        try:
            artifact = self.capture.stop()
        except CaptureError as exc:
            self.error = str(exc)
            raise
        if artifact is None and self.capture.error:
            self.error = self.capture.error
        return artifact

    async def stop_recording(self, language_hint: str | None = None) -> Recording | None:
        """Stop capture and start transcribing in the background."""
        artifact = self.stop_capture()
        if artifact is None:
            return None
        task = asyncio.get_running_loop().create_task(self.transcribe(artifact, language_hint))
        return Recording(artifact, task)

    async def transcribe(self, artifact: AudioArtifact, language_hint: str | None = None) -> str:
        """Decode, resample, gate and transcribe ``artifact``.

        Resolves to ``""`` for silence. Decode and model failures raise
        subclasses of :class:`TranscriptionError`.
        """
        language = language_hint or self.settings.language
        self._transcribing += 1
        try:
            buffer = await asyncio.to_thread(self.decoder.prepare, artifact)
            if buffer is None:
                TRANSCRIPTION_COUNTER.labels(status="silence").inc()
                return ""
            return await self.engine.transcribe_samples(buffer, language)
        except TranscriptionError as exc:
            self.error = str(exc)
            LOGGER.error("Transcription failed: %s", exc)
            raise
        finally:
            self._transcribing -= 1
            self.model_progress = None

    def close(self) -> None:
        self.capture.close()
        self.engine.shutdown()

    async def aclose(self) -> None:
        self.close()

    def _on_engine_progress(self, _request_id: str, data: Dict[str, Any]) -> None:
        progress = data.get("progress")
        if not isinstance(progress, (int, float)):
            return
        self.model_progress = round(progress)
        for callback in list(self._progress_callbacks):
            callback({"percent": self.model_progress})


__all__ = ["Recording", "VoiceLogger"]
