"""Pytest configuration helpers."""

from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import Callable, List

import numpy as np
import pytest


def _ensure_repo_on_path() -> None:
    """Allow tests to import from repo modules without installing the package."""
    repo_root = Path(__file__).resolve().parents[1]
    path_str = str(repo_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


_ensure_repo_on_path()

from voicelog.audio.microphone import AudioTrack, MicrophoneStream  # noqa: E402
from voicelog.errors import MicrophonePermissionError  # noqa: E402
from voicelog.settings import VoiceLogSettings  # noqa: E402


def sine_wave(duration_s: float, sample_rate: int, freq: float = 440.0, amplitude: float = 0.3) -> np.ndarray:
    t = np.arange(int(duration_s * sample_rate)) / sample_rate
    return (np.sin(2 * np.pi * freq * t) * amplitude).astype(np.float32)


class FakeMicrophone:
    """Stands in for PortAudio; tests push frames with :meth:`feed`."""

    def __init__(self, sample_rate: int = 44_100, *, deny: bool = False) -> None:
        self.sample_rate = sample_rate
        self.deny = deny
        self.constraints = None
        self.streams: List[MicrophoneStream] = []
        self.released = 0
        self._on_frames: Callable[[np.ndarray], None] | None = None
        self._on_error: Callable[[str], None] | None = None

    def open(self, constraints, on_frames, on_error) -> MicrophoneStream:
        if self.deny:
            raise MicrophonePermissionError("Could not access microphone: Permission denied")
        self.constraints = constraints
        self._on_frames = on_frames
        self._on_error = on_error
        stream = MicrophoneStream(self.sample_rate, [AudioTrack("fake-mic", self._release)])
        self.streams.append(stream)
        return stream

    def feed(self, samples: np.ndarray, block: int = 4096) -> None:
        assert self._on_frames is not None
        for offset in range(0, len(samples), block):
            self._on_frames(np.asarray(samples[offset : offset + block], dtype=np.float32))

    def fail(self, message: str) -> None:
        assert self._on_error is not None
        self._on_error(message)

    def _release(self) -> None:
        self.released += 1


class RecordingModel:
    """Fake speech model that records calls and returns a fixed reply."""

    def __init__(self, reply: str | Callable[[np.ndarray], str] = "hello world", gate: threading.Event | None = None) -> None:
        self.reply = reply
        self.gate = gate
        self.calls: List[int] = []

    def transcribe(self, audio: np.ndarray, language: str | None = None) -> str:
        if self.gate is not None:
            self.gate.wait(timeout=5)
        self.calls.append(len(audio))
        if callable(self.reply):
            return self.reply(audio)
        return self.reply


class CountingFactory:
    def __init__(self, model=None, *, fail_times: int = 0, delay: float = 0.0) -> None:
        self.model = model or RecordingModel()
        self.fail_times = fail_times
        self.delay = delay
        self.constructions = 0

    def __call__(self, settings, progress):
        self.constructions += 1
        progress({"status": "progress", "name": "fake", "progress": 50.0})
        if self.delay:
            threading.Event().wait(self.delay)
        if self.constructions <= self.fail_times:
            raise OSError("asset fetch failed")
        return self.model


@pytest.fixture()
def settings() -> VoiceLogSettings:
    return VoiceLogSettings(
        whisper_model="tiny.en",
        whisper_mock_transcriber=False,
        target_sample_rate=16_000,
        energy_gate=True,
        min_rms=0.0005,
        timeslice_sec=0.05,
        language="english",
    )


@pytest.fixture()
def microphone() -> FakeMicrophone:
    return FakeMicrophone()
