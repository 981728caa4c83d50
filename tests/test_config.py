"""Tests for backend settings."""

import pytest
from pydantic import ValidationError

from flowsync.backend.config import Settings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # No stray .env file from the working directory
    monkeypatch.chdir(tmp_path)
    for name in list(Settings.model_fields):
        monkeypatch.delenv(f"FLOWSYNC_{name.upper()}", raising=False)


def test_defaults():
    settings = get_settings()
    assert settings.port == 8765
    assert settings.debounce_ms == 300
    assert settings.initial_text.startswith("flowchart TD")
    assert "http://localhost:5173" in settings.cors_origin_list


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("FLOWSYNC_PORT", "9000")
    monkeypatch.setenv("FLOWSYNC_DEBOUNCE_MS", "50")
    monkeypatch.setenv("FLOWSYNC_CORS_ORIGINS", "http://a:1, http://b:2,")
    settings = get_settings()
    assert settings.port == 9000
    assert settings.debounce_ms == 50
    assert settings.cors_origin_list == ["http://a:1", "http://b:2"]


def test_negative_debounce_is_rejected(monkeypatch):
    monkeypatch.setenv("FLOWSYNC_DEBOUNCE_MS", "-1")
    with pytest.raises(ValidationError):
        get_settings()
