"""Microphone backends delivering mono float32 frames to the capture controller."""

from __future__ import annotations

import logging
from typing import Callable, List, Protocol

import numpy as np

from ..errors import MicrophonePermissionError
from .noise_filter import NoiseReducer
from .types import CaptureConstraints

LOGGER = logging.getLogger("voicelog.microphone")

FrameCallback = Callable[[np.ndarray], None]
ErrorCallback = Callable[[str], None]


class AudioTrack:
    """One hardware input track; ``stop()`` releases it and is idempotent."""

    kind = "audio"

    def __init__(self, label: str, release: Callable[[], None]) -> None:
        self.label = label
        self._release = release
        self.ready_state = "live"

    def stop(self) -> None:
        if self.ready_state == "ended":
            return
        self.ready_state = "ended"
        self._release()


class MicrophoneStream:
    """An acquired microphone stream and its tracks."""

    def __init__(self, sample_rate: int, tracks: List[AudioTrack]) -> None:
        self.sample_rate = int(sample_rate)
        self.tracks = tracks

    @property
    def active(self) -> bool:
        return any(track.ready_state == "live" for track in self.tracks)

    def stop(self) -> None:
        for track in self.tracks:
            track.stop()


class MicrophoneBackend(Protocol):
    def open(
        self,
        constraints: CaptureConstraints,
        on_frames: FrameCallback,
        on_error: ErrorCallback,
    ) -> MicrophoneStream:
        ...


class SoundDeviceMicrophone:
    """PortAudio input through ``sounddevice`` at the device's native rate."""

    def __init__(self, device: int | str | None = None, blocksize: int = 0) -> None:
        self.device = device
        self.blocksize = blocksize

    def open(
        self,
        constraints: CaptureConstraints,
        on_frames: FrameCallback,
        on_error: ErrorCallback,
    ) -> MicrophoneStream:
        sd = self._import_sounddevice()
        try:
            info = sd.query_devices(self.device, kind="input")
        except (sd.PortAudioError, ValueError) as exc:
            raise MicrophonePermissionError(f"No audio input device available: {exc}") from exc
        sample_rate = int(info["default_samplerate"])
        reducer = NoiseReducer(sample_rate) if constraints.noise_suppression else None
        if constraints.echo_cancellation or constraints.auto_gain_control:
            LOGGER.debug("PortAudio input has no echo cancellation/AGC; using raw device signal")

        def callback(indata, frames, time_info, status) -> None:  # noqa: ARG001
            if status:
                LOGGER.warning("Input stream status: %s", status)
            mono = np.array(indata[:, 0], dtype=np.float32)
            if reducer is not None:
                mono = reducer.apply(mono)
            try:
                on_frames(mono)
            except Exception as exc:
                on_error(f"Recording error: {exc}")
                raise sd.CallbackAbort from exc

        try:
            stream = sd.InputStream(
                device=self.device,
                samplerate=sample_rate,
                channels=constraints.channel_count,
                dtype="float32",
                blocksize=self.blocksize,
                callback=callback,
                finished_callback=lambda: LOGGER.debug("Input stream finished"),
            )
            stream.start()
        except sd.PortAudioError as exc:
            raise MicrophonePermissionError(f"Could not access microphone: {exc}") from exc

        def release() -> None:
            try:
                stream.stop()
            except sd.PortAudioError as exc:
                LOGGER.warning("Microphone release error: %s", exc)
            finally:
                stream.close()

        LOGGER.info("Microphone opened: %s @ %d Hz", info.get("name", "default"), sample_rate)
        return MicrophoneStream(sample_rate, [AudioTrack(str(info.get("name", "microphone")), release)])

    def _import_sounddevice(self):
        try:
            import sounddevice as sd  # type: ignore
        except OSError as exc:
            # Raised when the PortAudio shared library is missing.
            raise MicrophonePermissionError(f"PortAudio is unavailable: {exc}") from exc
        return sd


__all__ = [
    "AudioTrack",
    "MicrophoneBackend",
    "MicrophoneStream",
    "SoundDeviceMicrophone",
]
