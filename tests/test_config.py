"""
Unit tests for configuration module.
"""
import pytest
from pydantic import ValidationError

from core.config import get_settings, reset_settings


def test_settings_defaults(monkeypatch):
    """Test default configuration values."""
    for name in ("PORT", "LOG_LEVEL", "MONGODB_DATABASE", "DEFAULT_PAGE_SIZE", "DISPLAY_TIMEZONE"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()

    settings = get_settings()
    assert settings.app_name == "Goldman Bank Dashboard"
    assert settings.bank_name == "Goldman Bank"
    assert settings.host == "0.0.0.0"
    assert settings.port == 8000
    assert settings.log_level == "INFO"
    assert settings.mongodb_database == "goldman_bank"
    assert settings.transactions_collection == "histories"
    assert settings.profiles_collection == "kycs"
    assert settings.withdrawals_collection == "withdrawals"
    assert settings.default_page_size == 50
    assert settings.max_page_size == 200
    assert settings.auth_session_cookie == "__session"
    assert settings.display_timezone == "UTC"


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("MONGODB_URI", "mongodb://db.internal:27017")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("AUTH_JWT_SECRET", "s3cret")
    reset_settings()

    settings = get_settings()
    assert settings.mongodb_uri == "mongodb://db.internal:27017"
    assert settings.log_level == "DEBUG"
    assert settings.auth_configured is True


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


def test_settings_validation_timezone(monkeypatch):
    monkeypatch.setenv("DISPLAY_TIMEZONE", "Mars/Olympus_Mons")
    reset_settings()
    with pytest.raises(ValidationError):
        get_settings()


def test_settings_validation_page_size(monkeypatch):
    monkeypatch.setenv("DEFAULT_PAGE_SIZE", "0")
    reset_settings()
    with pytest.raises(ValidationError):
        get_settings()


def test_settings_singleton():
    """Test settings singleton behavior."""
    reset_settings()
    settings1 = get_settings()
    settings2 = get_settings()
    assert settings1 is settings2
