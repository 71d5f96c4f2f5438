import numpy as np
import pytest

from voicelog.audio.resample import resample, resampled_length


@pytest.mark.parametrize("rate", [8000, 16000, 44100, 48000])
def test_resample_identity_returns_input(rate):
    buf = np.random.default_rng(0).uniform(-1, 1, 1234).astype(np.float32)
    out = resample(buf, rate, rate)
    assert out is buf


@pytest.mark.parametrize(
    "length,source,target",
    [(44100, 44100, 16000), (48000, 48000, 16000), (16000, 16000, 44100), (1001, 22050, 16000), (7, 3, 5)],
)
def test_resample_length_law(length, source, target):
    buf = np.zeros(length, dtype=np.float32)
    out = resample(buf, source, target)
    assert abs(len(out) - length * target / source) <= 1
    assert len(out) == resampled_length(length, source, target)


@pytest.mark.parametrize("source,target", [(44100, 16000), (16000, 48000), (8000, 11025), (1, 2)])
def test_resample_constant_stays_constant(source, target):
    buf = np.full(997, 0.25, dtype=np.float32)
    out = resample(buf, source, target)
    assert np.allclose(out, 0.25, atol=1e-6)


def test_resample_interpolates_linearly():
    buf = np.array([0.0, 1.0, 2.0, 3.0], dtype=np.float32)
    out = resample(buf, 1, 2)
    assert len(out) == 8
    assert np.allclose(out[:7], [0.0, 0.5, 1.0, 1.5, 2.0, 2.5, 3.0])


def test_resample_downsample_picks_expected_samples():
    buf = np.arange(10, dtype=np.float32)
    out = resample(buf, 2, 1)
    assert np.allclose(out, [0, 2, 4, 6, 8])


def test_resample_empty_buffer():
    out = resample(np.zeros(0, dtype=np.float32), 44100, 16000)
    assert out.size == 0


@pytest.mark.parametrize("source,target", [(0, 16000), (16000, 0), (-1, 16000)])
def test_resample_rejects_non_positive_rates(source, target):
    with pytest.raises(ValueError):
        resample(np.zeros(10, dtype=np.float32), source, target)
