# backend/tests/core/test_config.py
"""Settings parsing."""

import pytest
from pydantic import ValidationError

from fitbook.core.config import Settings


def test_defaults_from_test_environment():
    settings = Settings()

    assert settings.default_timezone == "UTC"
    assert settings.exception_store_mode == "database"
    assert settings.is_testing is True
    assert settings.get_database_url() == "sqlite://"


def test_test_database_url_wins_under_pytest(monkeypatch):
    monkeypatch.setenv("TEST_DATABASE_URL", "sqlite:///fitbook_test.db")

    assert Settings().get_database_url() == "sqlite:///fitbook_test.db"


def test_unknown_default_timezone_rejected(monkeypatch):
    monkeypatch.setenv("DEFAULT_TIMEZONE", "Atlantis/Capital")

    with pytest.raises(ValidationError):
        Settings()


def test_log_level_is_normalized(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")

    assert Settings().log_level == "DEBUG"


def test_exception_store_mode_is_restricted(monkeypatch):
    monkeypatch.setenv("EXCEPTION_STORE_MODE", "sometimes")

    with pytest.raises(ValidationError):
        Settings()
