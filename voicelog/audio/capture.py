"""Microphone-to-artifact recording with time-sliced encoded chunks."""

from __future__ import annotations

import io
import logging
import queue
import threading
import time
from typing import Callable, Iterable, List, Optional

import numpy as np
import soundfile as sf

from ..errors import CaptureBusyError, CaptureError, EncodingUnsupportedError
from ..metrics import CAPTURED_AUDIO_SECONDS
from .microphone import MicrophoneBackend, MicrophoneStream, SoundDeviceMicrophone
from .types import AudioArtifact, CaptureConstraints, Encoding

LOGGER = logging.getLogger("voicelog.capture")

PREFERRED_ENCODINGS = (
    Encoding("audio/ogg;codecs=opus", "OGG", "OPUS", ".ogg"),
    Encoding("audio/ogg;codecs=vorbis", "OGG", "VORBIS", ".ogg"),
    Encoding("audio/flac", "FLAC", "PCM_16", ".flac"),
)
DEFAULT_ENCODING = Encoding("audio/wav", "WAV", "PCM_16", ".wav")

_STOP = object()


def encoding_supported(encoding: Encoding) -> bool:
    return sf.check_format(encoding.format, encoding.subtype)


class ChunkedBuffer(io.BytesIO):
    """In-memory encoder sink that remembers where each time slice ended.

    Encoders may seek back to patch container headers; because slices are
    views over one buffer, those patches show up in the chunks too.
    """

    def __init__(self) -> None:
        super().__init__()
        self._marks: List[int] = [0]

    def mark(self) -> None:
        with self.getbuffer() as view:
            end = view.nbytes
        if end > self._marks[-1]:
            self._marks.append(end)

    @property
    def chunks(self) -> List[bytes]:
        data = self.getvalue()
        bounds = self._marks + ([len(data)] if len(data) > self._marks[-1] else [])
        return [data[start:end] for start, end in zip(bounds, bounds[1:])]


class CaptureSession:
    """State for one record-to-stop cycle."""

    def __init__(self, encoding: Encoding, encoder: sf.SoundFile, sink: ChunkedBuffer,
                 sample_rate: int, timeslice: float) -> None:
        self.encoding = encoding
        self.sample_rate = sample_rate
        self.timeslice = timeslice
        self.state = "recording"
        self.error: Optional[str] = None
        self.frames_written = 0
        self._encoder = encoder
        self._sink = sink
        self._frames: "queue.Queue[object]" = queue.Queue()
        self._writer = threading.Thread(target=self._drain, name="voicelog-capture", daemon=True)
        self._writer.start()

    @property
    def chunks(self) -> List[bytes]:
        return self._sink.chunks

    def push(self, frames: np.ndarray) -> None:
        if self.state == "recording" and frames.size:
            self._frames.put(frames)

    def fail(self, message: str) -> None:
        if self.state != "error":
            LOGGER.error("Capture session failed: %s", message)
        self.state = "error"
        self.error = message

    def finish(self, timeout: float = 5.0) -> bytes:
        self._frames.put(_STOP)
        self._writer.join(timeout=timeout)
        if self._writer.is_alive():
            raise CaptureError("Encoder did not finish flushing audio in time")
        return b"".join(self.chunks)

    def abandon(self) -> None:
        self.state = "idle"
        self._frames.put(_STOP)
        self._writer.join(timeout=2)

    def _drain(self) -> None:
        next_mark = time.monotonic() + self.timeslice
        try:
            while True:
                try:
                    item = self._frames.get(timeout=min(0.05, self.timeslice))
                except queue.Empty:
                    item = None
                if item is _STOP:
                    break
                if item is not None:
                    self._encoder.write(item)
                    self.frames_written += len(item)
                if time.monotonic() >= next_mark:
                    self._sink.flush()
                    self._sink.mark()
                    next_mark += self.timeslice
        except (sf.LibsndfileError, ValueError) as exc:
            self.fail(f"Encoding error: {exc}")
        finally:
            try:
                self._encoder.close()
            except sf.LibsndfileError as exc:
                self.fail(f"Encoder flush error: {exc}")
            self._sink.mark()


class CaptureController:
    """Owns the microphone and turns one recording into one :class:`AudioArtifact`.

    Only one session may record at a time; a second ``start()`` raises
    :class:`CaptureBusyError` instead of replacing the running session.
    ``stop()`` releases the microphone before any finalization work.
    """

    def __init__(
        self,
        microphone: MicrophoneBackend | None = None,
        *,
        timeslice: float = 1.0,
        constraints: CaptureConstraints | None = None,
        encodings: Iterable[Encoding] = PREFERRED_ENCODINGS,
        is_supported: Callable[[Encoding], bool] = encoding_supported,
    ) -> None:
        self.microphone = microphone or SoundDeviceMicrophone()
        self.timeslice = timeslice
        self.constraints = constraints or CaptureConstraints()
        self.encodings = tuple(encodings)
        self.is_supported = is_supported
        self._stream: MicrophoneStream | None = None
        self._session: CaptureSession | None = None
        self._failure: str | None = None

    @property
    def state(self) -> str:
        if self._session is not None:
            return self._session.state
        return "error" if self._failure else "idle"

    @property
    def error(self) -> str | None:
        if self._session is not None and self._session.error:
            return self._session.error
        return self._failure

    @property
    def session(self) -> CaptureSession | None:
        return self._session

    def start(self) -> None:
        if self._session is not None and self._session.state == "recording":
            raise CaptureBusyError("A recording is already in progress")
        self._release_microphone()
        self._discard_session()
        self._failure = None
        try:
            stream = self.microphone.open(self.constraints, self._on_frames, self._on_error)
        except CaptureError as exc:
            self._failure = str(exc)
            LOGGER.error("Microphone access error: %s", exc)
            raise
        self._stream = stream
        try:
            encoding, encoder, sink = self._open_encoder(stream.sample_rate)
        except EncodingUnsupportedError as exc:
            self._release_microphone()
            self._failure = str(exc)
            raise
        self._session = CaptureSession(encoding, encoder, sink, stream.sample_rate, self.timeslice)
        LOGGER.info("Recording started (%s @ %d Hz)", encoding.media_type, stream.sample_rate)

    def stop(self) -> AudioArtifact | None:
        session = self._session
        if session is None:
            return None
        self._release_microphone()
        if session.state != "recording":
            self._failure = session.error
            session.abandon()
            self._session = None
            LOGGER.warning("Recording stopped after error: %s", session.error)
            return None
        try:
            data = session.finish()
        except CaptureError as exc:
            session.fail(str(exc))
            self._failure = session.error
            raise
        finally:
            self._session = None
        if session.state == "error":
            self._failure = session.error
            return None
        duration = session.frames_written / float(session.sample_rate)
        CAPTURED_AUDIO_SECONDS.observe(duration)
        LOGGER.info("Recording stopped: %.2fs, %d bytes in %d chunks",
                    duration, len(data), len(session.chunks))
        return AudioArtifact(
            data=data,
            media_type=session.encoding.media_type,
            sample_rate=session.sample_rate,
            duration=duration,
        )

    def close(self) -> None:
        self._release_microphone()
        self._discard_session()

    def __enter__(self) -> "CaptureController":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _open_encoder(self, sample_rate: int) -> tuple[Encoding, sf.SoundFile, ChunkedBuffer]:
        candidates = [enc for enc in self.encodings if self.is_supported(enc)]
        if not candidates:
            LOGGER.warning("No preferred encoding supported; falling back to %s", DEFAULT_ENCODING.media_type)
        candidates.append(DEFAULT_ENCODING)
        for encoding in candidates:
            sink = ChunkedBuffer()
            try:
                encoder = sf.SoundFile(
                    sink,
                    mode="w",
                    samplerate=sample_rate,
                    channels=1,
                    format=encoding.format,
                    subtype=encoding.subtype,
                )
            except (sf.LibsndfileError, ValueError, TypeError) as exc:
                # Opus only encodes at 8/12/16/24/48 kHz; try the next option.
                LOGGER.debug("Encoding %s unavailable at %d Hz: %s", encoding.media_type, sample_rate, exc)
                continue
            return encoding, encoder, sink
        raise EncodingUnsupportedError(f"No supported audio encoding at {sample_rate} Hz")

    def _on_frames(self, frames: np.ndarray) -> None:
        session = self._session
        if session is not None:
            session.push(frames)

    def _on_error(self, message: str) -> None:
        session = self._session
        if session is not None:
            session.fail(message)
        else:
            self._failure = message

    def _release_microphone(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()

    def _discard_session(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            session.abandon()


__all__ = [
    "CaptureController",
    "CaptureSession",
    "ChunkedBuffer",
    "DEFAULT_ENCODING",
    "PREFERRED_ENCODINGS",
    "encoding_supported",
]
