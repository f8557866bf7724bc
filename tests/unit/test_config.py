"""Unit tests for environment-driven error settings."""

from __future__ import annotations

from collections.abc import Generator

import pytest

from rest_errors.core.config import ErrorSettings
from rest_errors.core.config import get_error_settings


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    get_error_settings.cache_clear()
    yield
    get_error_settings.cache_clear()


def test_settings_default_to_development_and_server_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("REST_ERRORS_ENV", raising=False)
    monkeypatch.delenv("REST_ERRORS_LOG", raising=False)

    settings = get_error_settings()

    assert settings.environment == "development"
    assert settings.log_mode == "server"
    assert settings.is_production is False


def test_settings_are_loaded_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REST_ERRORS_ENV", "Production")
    monkeypatch.setenv("REST_ERRORS_LOG", "all")

    settings = get_error_settings()

    assert settings.is_production is True
    assert settings.log_mode == "all"


def test_invalid_log_mode_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REST_ERRORS_LOG", "loud")

    with pytest.raises(ValueError, match="REST_ERRORS_LOG"):
        get_error_settings()


def test_should_log_follows_mode_and_environment() -> None:
    assert ErrorSettings(log_mode="off").should_log(500) is False
    assert ErrorSettings(log_mode="server").should_log(404) is False
    assert ErrorSettings(log_mode="server").should_log(503) is True
    assert ErrorSettings(log_mode="all").should_log(404) is True
    assert ErrorSettings(environment="test", log_mode="server").should_log(404) is True
