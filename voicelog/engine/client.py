"""Caller-side handle on the inference worker."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Set

from ..audio.types import SampleBuffer
from ..errors import (
    EngineConstructionError,
    EngineCrashError,
    InferenceError,
    TranscriptionError,
)
from ..metrics import TRANSCRIPTION_COUNTER
from ..settings import VoiceLogSettings, get_settings
from .correlator import RequestCorrelator
from .messages import (
    CompleteMessage,
    ErrorMessage,
    ProgressMessage,
    TranscribeRequest,
    WorkerCrashed,
    WorkerMessage,
)
from .model import ModelFactory
from .worker import TranscriptionWorker

LOGGER = logging.getLogger("voicelog.engine")

ProgressListener = Callable[[str, Dict[str, Any]], None]


class InferenceEngine:
    """Dispatches sample buffers to the worker and awaits id-keyed replies.

    Replies hop from the worker thread onto the event loop that started the
    worker. If a worker dies, every request it was holding is rejected with
    :class:`EngineCrashError` and the next call starts a fresh worker.
    """

    def __init__(
        self,
        settings: VoiceLogSettings | None = None,
        *,
        model_factory: Optional[ModelFactory] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.model_factory = model_factory
        self.correlator = RequestCorrelator()
        self._worker: TranscriptionWorker | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._generation = 0
        self._inflight: Dict[int, Set[str]] = {}
        self._listeners: List[ProgressListener] = []

    @property
    def worker(self) -> TranscriptionWorker | None:
        return self._worker

    def add_progress_listener(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    async def transcribe_samples(self, buffer: SampleBuffer, language: str | None = None) -> str:
        """Transfer ``buffer`` to the worker and wait for its transcript.

        ``buffer`` is detached on return; its samples now belong to the worker.
        """
        loop = asyncio.get_running_loop()
        if self._worker is not None and not self._worker.alive:
            # A dead worker has already queued its crash notice; let it settle first.
            await asyncio.sleep(0)
        worker = self._ensure_worker(loop)
        generation = self._generation
        request_id = uuid.uuid4().hex
        future = self.correlator.register(request_id, loop)
        inflight = self._inflight.setdefault(generation, set())
        inflight.add(request_id)
        try:
            worker.submit(TranscribeRequest(request_id, buffer.transfer(), language))
        except EngineCrashError as exc:
            self._drop_worker(worker)
            self.correlator.reject(request_id, exc)
        try:
            transcript = await future
        except TranscriptionError:
            TRANSCRIPTION_COUNTER.labels(status="error").inc()
            raise
        finally:
            inflight.discard(request_id)
        TRANSCRIPTION_COUNTER.labels(status="complete").inc()
        return transcript

    def shutdown(self) -> None:
        worker, self._worker = self._worker, None
        if worker is not None:
            worker.stop()
        self._inflight.clear()
        self.correlator.reject_all(TranscriptionError("Inference engine shut down"))

    def _ensure_worker(self, loop: asyncio.AbstractEventLoop) -> TranscriptionWorker:
        worker = self._worker
        if worker is not None and self._loop is loop and worker.alive:
            return worker
        if worker is not None:
            self._drop_worker(worker)
        self._generation += 1
        generation = self._generation

        def post(message: WorkerMessage) -> None:
            loop.call_soon_threadsafe(self._dispatch, generation, message)

        worker = TranscriptionWorker(self.settings, post, model_factory=self.model_factory)
        worker.start()
        self._worker = worker
        self._loop = loop
        LOGGER.info("Started transcription worker #%d", generation)
        return worker

    def _drop_worker(self, worker: TranscriptionWorker) -> None:
        if self._worker is worker:
            self._worker = None
        if worker.alive:
            worker.stop(timeout=0)

    def _dispatch(self, generation: int, message: WorkerMessage) -> None:
        if isinstance(message, ProgressMessage):
            for listener in list(self._listeners):
                listener(message.id, message.data)
        elif isinstance(message, CompleteMessage):
            self.correlator.resolve(message.id, message.transcript)
        elif isinstance(message, ErrorMessage):
            error_cls = EngineConstructionError if message.kind == "construction" else InferenceError
            self.correlator.reject(message.id, error_cls(message.message))
        elif isinstance(message, WorkerCrashed):
            LOGGER.error("Transcription worker #%d crashed: %s", generation, message.reason)
            if generation == self._generation:
                self._worker = None
            # Requests held by a newer worker generation are unaffected.
            for request_id in self._inflight.pop(generation, set()):
                self.correlator.reject(
                    request_id, EngineCrashError(f"Transcription worker crashed: {message.reason}")
                )


__all__ = ["InferenceEngine"]
