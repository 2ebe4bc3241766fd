"""
Unit tests for configuration module.
"""
from pathlib import Path

import pytest
from pydantic import ValidationError

from core.config import get_settings, reset_settings


def test_settings_defaults(monkeypatch):
    """Test default configuration values."""
    for var in ("APP_NAME", "HOST", "PORT", "LOG_LEVEL", "LEDGER_API_BASE_URL", "LEDGER_API_TOKEN"):
        monkeypatch.delenv(var, raising=False)
    reset_settings()

    settings = get_settings()
    assert settings.app_name == "Ledger Reconciliation Service"
    assert settings.host == "0.0.0.0"
    assert settings.port == 8000
    assert settings.log_level == "INFO"
    assert settings.ledger_api_base_url == "http://localhost:5000"
    assert settings.ledger_api_token is None


def test_settings_creates_storage_directory():
    """Export directory exists once settings are loaded."""
    settings = get_settings()
    assert Path(settings.export_storage_path).is_dir()


def test_settings_validation_port(monkeypatch):
    """Test port validation."""
    monkeypatch.setenv("PORT", "99999")

    reset_settings()
    with pytest.raises(ValidationError):
        get_settings()


def test_settings_validation_log_level(monkeypatch):
    """Test log level validation."""
    monkeypatch.setenv("LOG_LEVEL", "INVALID")

    reset_settings()
    with pytest.raises(ValidationError):
        get_settings()


def test_log_level_is_upper_cased(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")

    reset_settings()
    assert get_settings().log_level == "DEBUG"


def test_base_url_trailing_slash_stripped(monkeypatch):
    monkeypatch.setenv("LEDGER_API_BASE_URL", "https://books.example.com/")

    reset_settings()
    assert get_settings().ledger_api_base_url == "https://books.example.com"


def test_base_url_requires_scheme(monkeypatch):
    monkeypatch.setenv("LEDGER_API_BASE_URL", "books.example.com")

    reset_settings()
    with pytest.raises(ValidationError):
        get_settings()


def test_settings_singleton():
    """Test settings singleton behavior."""
    reset_settings()
    settings1 = get_settings()
    settings2 = get_settings()
    assert settings1 is settings2
