"""Lazy faster-whisper loader with a construct-once guard and mock fallback."""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Callable, Dict, Iterable, Optional, Protocol

import numpy as np
from huggingface_hub import snapshot_download
from tqdm.auto import tqdm

from ..errors import EngineConstructionError
from ..metrics import MODEL_CONSTRUCTION_COUNTER
from ..settings import VoiceLogSettings

LOGGER = logging.getLogger("voicelog.model")

ProgressCallback = Callable[[Dict[str, Any]], None]

MODEL_FILES = [
    "config.json",
    "preprocessor_config.json",
    "model.bin",
    "tokenizer.json",
    "vocabulary.*",
]

LANGUAGE_CODES = {
    "english": "en",
    "spanish": "es",
    "french": "fr",
    "german": "de",
    "italian": "it",
    "portuguese": "pt",
    "dutch": "nl",
    "polish": "pl",
    "czech": "cs",
    "russian": "ru",
    "ukrainian": "uk",
    "turkish": "tr",
    "japanese": "ja",
    "chinese": "zh",
    "korean": "ko",
    "arabic": "ar",
    "hindi": "hi",
}


class SpeechModel(Protocol):
    def transcribe(self, audio: np.ndarray, language: Optional[str] = None) -> str:
        ...


ModelFactory = Callable[[VoiceLogSettings, ProgressCallback], SpeechModel]


def language_code(hint: Optional[str]) -> Optional[str]:
    if not hint:
        return None
    value = hint.strip().lower()
    if value in {"auto", ""}:
        return None
    return LANGUAGE_CODES.get(value, value)


class WhisperSpeechModel:
    """Adapter over ``faster_whisper.WhisperModel`` returning plain text."""

    def __init__(self, model, settings: VoiceLogSettings) -> None:
        self._model = model
        self.settings = settings

    def transcribe(self, audio: np.ndarray, language: Optional[str] = None) -> str:
        language = language_code(language)
        if self.settings.whisper_model.endswith(".en"):
            language = "en"
        segments, _info = self._model.transcribe(
            audio,
            language=language,
            task="transcribe",
            beam_size=self.settings.beam_size,
            chunk_length=self.settings.chunk_length,
            vad_filter=self.settings.vad_filter,
            without_timestamps=True,
        )
        return _join_segments(segments)


class MockSpeechModel:
    def transcribe(self, audio: np.ndarray, language: Optional[str] = None) -> str:
        return f"[mock transcript {len(audio)} samples]"


def _join_segments(segments: Iterable) -> str:
    pieces = [segment.text.strip() for segment in segments]
    return " ".join(piece for piece in pieces if piece).strip()


def _progress_bar(callback: ProgressCallback, name: str):
    class _ProgressBar(tqdm):
        def update(self, n=1):
            displayed = super().update(n)
            if self.total:
                callback(
                    {
                        "status": "progress",
                        "name": name,
                        "loaded": self.n,
                        "total": self.total,
                        "progress": 100.0 * self.n / self.total,
                    }
                )
            return displayed

    return _ProgressBar


def fetch_model(settings: VoiceLogSettings, progress: ProgressCallback) -> str:
    """Resolve the model to a local directory, downloading it on first use."""
    name = settings.whisper_model
    if os.path.isdir(name):
        return name
    repo_id = name if "/" in name else f"Systran/faster-whisper-{name}"
    progress({"status": "initiate", "name": repo_id})
    path = snapshot_download(
        repo_id,
        cache_dir=settings.model_cache_dir,
        allow_patterns=MODEL_FILES,
        tqdm_class=_progress_bar(progress, repo_id),
    )
    progress({"status": "done", "name": repo_id})
    return path


def load_whisper_model(settings: VoiceLogSettings, progress: ProgressCallback) -> SpeechModel:
    from faster_whisper import WhisperModel  # heavy import, deferred to the worker

    model_path = fetch_model(settings, progress)
    model = WhisperModel(
        model_path,
        device=settings.whisper_device,
        compute_type=settings.whisper_compute_type,
    )
    progress({"status": "ready", "name": settings.whisper_model})
    return WhisperSpeechModel(model, settings)


def load_mock_model(settings: VoiceLogSettings, progress: ProgressCallback) -> SpeechModel:
    progress({"status": "ready", "name": "mock"})
    return MockSpeechModel()


def _ignore_progress(_data: Dict[str, Any]) -> None:
    return None


class ModelHandle:
    """Lazily constructed model shared by every request on one worker.

    Concurrent first callers serialize on the lock and reuse the single
    construction; a failed construction resets to ``uninitialized`` so a
    later request can retry.
    """

    UNINITIALIZED = "uninitialized"
    CONSTRUCTING = "constructing"
    READY = "ready"

    def __init__(self, settings: VoiceLogSettings, factory: Optional[ModelFactory] = None) -> None:
        self.settings = settings
        if factory is None:
            if settings.whisper_mock_transcriber:
                LOGGER.warning(
                    "Whisper mock mode enabled (set VOICELOG_ENGINE_MOCK=0 to enable real transcription)."
                )
                factory = load_mock_model
            else:
                factory = load_whisper_model
        self._factory = factory
        self._lock = threading.Lock()
        self._model: Optional[SpeechModel] = None
        self.state = self.UNINITIALIZED
        self.construction_count = 0

    def get(self, progress: Optional[ProgressCallback] = None) -> SpeechModel:
        if self._model is None:
            with self._lock:
                if self._model is None:
                    self._model = self._construct(progress or _ignore_progress)
        return self._model

    def _construct(self, progress: ProgressCallback) -> SpeechModel:
        self.state = self.CONSTRUCTING
        self.construction_count += 1
        LOGGER.info("First-time initialization of speech model '%s'", self.settings.whisper_model)
        try:
            model = self._factory(self.settings, progress)
        except Exception as exc:
            self.state = self.UNINITIALIZED
            MODEL_CONSTRUCTION_COUNTER.labels(status="error").inc()
            LOGGER.error("Failed to load speech model '%s': %s", self.settings.whisper_model, exc)
            raise EngineConstructionError(
                f"Failed to load speech model '{self.settings.whisper_model}': {exc}"
            ) from exc
        self.state = self.READY
        MODEL_CONSTRUCTION_COUNTER.labels(status="success").inc()
        return model


__all__ = [
    "MockSpeechModel",
    "ModelFactory",
    "ModelHandle",
    "SpeechModel",
    "WhisperSpeechModel",
    "fetch_model",
    "language_code",
    "load_mock_model",
    "load_whisper_model",
]
