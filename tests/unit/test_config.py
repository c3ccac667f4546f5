"""Tests for configuration management."""

import pytest
from pydantic import ValidationError

from genui.core.config import Settings, get_settings
from genui.models import Backend, ModelConfig


@pytest.mark.unit
def test_settings_defaults(monkeypatch):
    """Defaults match the documented service behaviour."""
    monkeypatch.delenv("GENUI_LLM_BACKEND", raising=False)
    monkeypatch.delenv("GENUI_HEARTBEAT_INTERVAL", raising=False)
    settings = Settings(_env_file=None)

    assert settings.port == 3001
    assert settings.llm_backend == "openai"
    assert settings.generation_timeout == 60.0
    assert settings.heartbeat_interval == 15.0
    assert settings.sticky_confidence_threshold == 0.9
    assert settings.history_max_turns == 10
    assert settings.session_ttl == 3600


@pytest.mark.unit
def test_settings_from_environment(monkeypatch):
    """GENUI_-prefixed variables override defaults."""
    monkeypatch.setenv("GENUI_PORT", "9000")
    monkeypatch.setenv("GENUI_LLM_BACKEND", "gemini")
    monkeypatch.setenv("GENUI_HISTORY_MAX_TURNS", "4")

    settings = Settings(_env_file=None)

    assert settings.port == 9000
    assert settings.llm_backend == "gemini"
    assert settings.history_max_turns == 4


@pytest.mark.unit
def test_settings_reject_unknown_backend():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, llm_backend="llama")


@pytest.mark.unit
def test_settings_reject_bad_threshold():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, sticky_confidence_threshold=1.5)


@pytest.mark.unit
def test_get_settings_cached():
    assert get_settings() is get_settings()


@pytest.mark.unit
def test_model_config_from_settings():
    """Backend selection follows llm_backend."""
    settings = Settings(
        _env_file=None,
        llm_backend="openai",
        completion_endpoint="https://llm.example/v1/chat/completions",
        completion_api_key="k",
        completion_model="m",
    )
    config = ModelConfig.from_settings(settings)

    assert config.backend == Backend.OPENAI
    assert config.chat is not None
    assert config.chat.endpoint == "https://llm.example/v1/chat/completions"
    assert config.chat.model_name == "m"


@pytest.mark.unit
def test_model_config_mock_backend():
    config = ModelConfig.from_settings(Settings(_env_file=None, llm_backend="mock"))
    assert config.backend == Backend.MOCK
