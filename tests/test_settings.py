import importlib

import pytest
from pydantic import ValidationError

from voicelog import settings as settings_mod


def test_flag_parsing(monkeypatch):
    for value in ("1", "true", "YES"):
        monkeypatch.setenv("VOICELOG_VAD_FILTER", value)
        assert settings_mod._flag("VOICELOG_VAD_FILTER", "false") is True
    monkeypatch.setenv("VOICELOG_VAD_FILTER", "0")
    assert settings_mod._flag("VOICELOG_VAD_FILTER", "true") is False
    monkeypatch.delenv("VOICELOG_VAD_FILTER")
    assert settings_mod._flag("VOICELOG_VAD_FILTER", "true") is True


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("VOICELOG_MODEL", "base")
    monkeypatch.setenv("VOICELOG_ENGINE_MOCK", "1")
    monkeypatch.setenv("VOICELOG_TARGET_SAMPLE_RATE", "8000")
    monkeypatch.setenv("VOICELOG_ENERGY_GATE", "0")
    try:
        module = importlib.reload(settings_mod)
        loaded = module.VoiceLogSettings()
        assert loaded.whisper_model == "base"
        assert loaded.whisper_mock_transcriber is True
        assert loaded.target_sample_rate == 8000
        assert loaded.energy_gate is False
    finally:
        monkeypatch.undo()
        importlib.reload(settings_mod)


def test_defaults_without_environment(monkeypatch):
    for name in ("VOICELOG_MODEL", "VOICELOG_TARGET_SAMPLE_RATE", "VOICELOG_MIN_RMS", "VOICELOG_TIMESLICE_SEC"):
        monkeypatch.delenv(name, raising=False)
    try:
        loaded = importlib.reload(settings_mod).VoiceLogSettings()
        assert loaded.whisper_model == "tiny.en"
        assert loaded.target_sample_rate == 16_000
        assert loaded.min_rms == 0.0005
        assert loaded.timeslice_sec == 1.0
    finally:
        monkeypatch.undo()
        importlib.reload(settings_mod)


@pytest.mark.parametrize("field, value", [("target_sample_rate", 0), ("timeslice_sec", 0.0), ("min_rms", -1.0)])
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        settings_mod.VoiceLogSettings(**{field: value})


def test_get_settings_is_cached():
    settings_mod.get_settings.cache_clear()
    try:
        assert settings_mod.get_settings() is settings_mod.get_settings()
    finally:
        settings_mod.get_settings.cache_clear()
