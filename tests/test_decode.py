import io

import numpy as np
import pytest
import soundfile as sf

from voicelog.audio import decode as decode_mod
from voicelog.audio.decode import AudioDecoder
from voicelog.audio.types import AudioArtifact
from voicelog.errors import DecodeError

from conftest import sine_wave


def _artifact(samples: np.ndarray, rate: int, fmt: str = "WAV", subtype: str = "FLOAT") -> AudioArtifact:
    buf = io.BytesIO()
    sf.write(buf, samples, rate, format=fmt, subtype=subtype)
    media = {"WAV": "audio/wav", "FLAC": "audio/flac"}[fmt]
    return AudioArtifact(buf.getvalue(), media, rate, len(samples) / rate)


def test_decode_keeps_native_rate():
    artifact = _artifact(sine_wave(1.0, 44_100), 44_100)
    decoded = AudioDecoder().decode(artifact)
    assert decoded.sample_rate == 44_100
    assert len(decoded) == 44_100
    assert decoded.samples.dtype == np.float32


def test_decode_takes_first_channel():
    left = np.full(800, 0.5, dtype=np.float32)
    right = np.full(800, -0.25, dtype=np.float32)
    artifact = _artifact(np.stack([left, right], axis=1), 8_000)
    decoded = AudioDecoder().decode(artifact)
    assert np.allclose(decoded.samples, 0.5)


def test_prepare_resamples_to_target_rate():
    artifact = _artifact(sine_wave(2.0, 44_100), 44_100)
    prepared = AudioDecoder(16_000).prepare(artifact)
    assert prepared is not None
    assert prepared.sample_rate == 16_000
    assert abs(len(prepared) - 32_000) <= 1


def test_prepare_gates_silence():
    artifact = _artifact(np.zeros(48_000, dtype=np.float32), 48_000)
    assert AudioDecoder().prepare(artifact) is None


def test_prepare_without_gate_returns_silence():
    artifact = _artifact(np.zeros(48_000, dtype=np.float32), 48_000)
    prepared = AudioDecoder(energy_gate=False).prepare(artifact)
    assert prepared is not None
    assert len(prepared) == 16_000


def test_decode_handles_flac():
    artifact = _artifact(sine_wave(0.5, 22_050), 22_050, fmt="FLAC", subtype="PCM_16")
    decoded = AudioDecoder().decode(artifact)
    assert decoded.sample_rate == 22_050
    assert np.max(np.abs(decoded.samples)) > 0.25


@pytest.mark.parametrize("payload", [b"", b"\x1aE\xdf\xa3 definitely not audio", b"RIFF\x00\x00"])
def test_undecodable_artifact_raises_decode_error(payload):
    artifact = AudioArtifact(payload, "audio/webm;codecs=opus", 48_000, 1.0)
    with pytest.raises(DecodeError) as excinfo:
        AudioDecoder().decode(artifact)
    assert "decode failed" in str(excinfo.value)


def test_decoding_context_closed_on_failure(monkeypatch):
    opened = []

    class BrokenFile:
        samplerate = 48_000

        def __init__(self, *args, **kwargs):
            self.closed = False
            opened.append(self)

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            self.closed = True

        def read(self, **kwargs):
            raise sf.LibsndfileError(0, "corrupt frame")

    monkeypatch.setattr(decode_mod.sf, "SoundFile", BrokenFile)
    with pytest.raises(DecodeError):
        AudioDecoder().decode(AudioArtifact(b"data", "audio/ogg", 48_000, 1.0))
    assert opened and opened[0].closed


def test_from_settings(settings):
    decoder = AudioDecoder.from_settings(settings)
    assert decoder.target_sample_rate == settings.target_sample_rate
    assert decoder.energy_gate is settings.energy_gate
    assert decoder.min_rms == settings.min_rms
