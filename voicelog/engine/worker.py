"""Dedicated inference thread that owns the speech model."""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, Optional

import numpy as np

from ..errors import BufferDetachedError, EngineConstructionError, EngineCrashError
from ..metrics import INFERENCE_LATENCY
from ..settings import VoiceLogSettings
from .messages import (
    CompleteMessage,
    ErrorMessage,
    ProgressMessage,
    TranscribeRequest,
    WorkerCrashed,
    WorkerMessage,
)
from .model import ModelFactory, ModelHandle
from .sentinel import normalize_transcript

LOGGER = logging.getLogger("voicelog.worker")

_SHUTDOWN = object()


class TranscriptionWorker:
    """Processes :class:`TranscribeRequest` objects one at a time off the caller's thread.

    Every request gets zero or more progress messages followed by exactly one
    complete or error message, all delivered through ``post``. If the loop
    itself dies, a single :class:`WorkerCrashed` is posted instead.
    """

    def __init__(
        self,
        settings: VoiceLogSettings,
        post: Callable[[WorkerMessage], None],
        *,
        model_factory: Optional[ModelFactory] = None,
        name: str = "voicelog-inference",
    ) -> None:
        self.settings = settings
        self.handle = ModelHandle(settings, model_factory)
        self.name = name
        self._post = post
        self._inbox: "queue.Queue[object]" = queue.Queue()
        self._thread: threading.Thread | None = None

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.alive:
            return
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def submit(self, request: TranscribeRequest) -> None:
        if not self.alive:
            raise EngineCrashError("Transcription worker is not running")
        self._inbox.put(request)

    def stop(self, timeout: float = 2.0) -> None:
        self._inbox.put(_SHUTDOWN)
        if self._thread:
            self._thread.join(timeout=timeout)

    def _run(self) -> None:
        try:
            while True:
                item = self._inbox.get()
                if item is _SHUTDOWN:
                    return
                self._process(item)  # type: ignore[arg-type]
        except BaseException as exc:
            LOGGER.exception("Transcription worker crashed")
            self._post(WorkerCrashed(reason=f"{type(exc).__name__}: {exc}"))

    def _process(self, request: TranscribeRequest) -> None:
        try:
            audio = request.audio.samples
        except BufferDetachedError:
            audio = None
        if not isinstance(audio, np.ndarray) or audio.dtype != np.float32 or audio.ndim != 1:
            self._post(ErrorMessage(request.id, "Invalid audio data received by worker."))
            return

        def report(data: dict) -> None:
            self._post(ProgressMessage(request.id, data))

        try:
            model = self.handle.get(report)
        except EngineConstructionError as exc:
            self._post(ErrorMessage(request.id, str(exc), kind="construction"))
            return

        started = time.perf_counter()
        LOGGER.debug("Starting transcription %s (%d samples)", request.id, len(audio))
        try:
            raw = model.transcribe(audio, language=request.language)
        except Exception as exc:
            LOGGER.error("Worker transcription error (%s): %s", request.id, exc)
            self._post(ErrorMessage(request.id, str(exc) or type(exc).__name__))
            return
        finally:
            INFERENCE_LATENCY.observe(time.perf_counter() - started)
        LOGGER.debug("Raw transcript %s: %r", request.id, raw)
        self._post(CompleteMessage(request.id, normalize_transcript(raw)))


__all__ = ["TranscriptionWorker"]
