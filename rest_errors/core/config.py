"""Runtime settings for error formatting and handler logging."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os

DEFAULT_ENVIRONMENT = "development"
PRODUCTION_ENVIRONMENT = "production"
TEST_ENVIRONMENT = "test"

LOG_OFF = "off"
LOG_SERVER = "server"
LOG_ALL = "all"
LOG_MODES = frozenset({LOG_OFF, LOG_SERVER, LOG_ALL})
DEFAULT_LOG_MODE = LOG_SERVER


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower()


def _get_choice_env(name: str, default: str, choices: frozenset[str]) -> str:
    value = _get_str_env(name, default)
    if value not in choices:
        raise ValueError(f"{name} must be one of {sorted(choices)}, got {value!r}")
    return value


@dataclass(frozen=True)
class ErrorSettings:
    """Environment-dependent switches for formatting and logging errors."""

    environment: str = DEFAULT_ENVIRONMENT
    log_mode: str = DEFAULT_LOG_MODE

    def __post_init__(self) -> None:
        if self.log_mode not in LOG_MODES:
            raise ValueError(f"log_mode must be one of {sorted(LOG_MODES)}")

    @property
    def is_production(self) -> bool:
        return self.environment == PRODUCTION_ENVIRONMENT

    def should_log(self, status: int) -> bool:
        """Return whether a handled error with ``status`` should be logged."""
        if self.log_mode == LOG_OFF:
            return False
        if self.log_mode == LOG_ALL or self.environment == TEST_ENVIRONMENT:
            return True
        return status >= 500


@lru_cache(maxsize=1)
def get_error_settings() -> ErrorSettings:
    """Load error settings from the environment."""
    return ErrorSettings(
        environment=_get_str_env("REST_ERRORS_ENV", DEFAULT_ENVIRONMENT),
        log_mode=_get_choice_env("REST_ERRORS_LOG", DEFAULT_LOG_MODE, LOG_MODES),
    )
