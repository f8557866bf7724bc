"""Shared pytest fixtures for rest-errors test suites."""

from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from rest_errors.core import codes  # noqa: E402
from rest_errors.core import formatters  # noqa: E402
from rest_errors.core.codes import ErrorCodeRegistry  # noqa: E402
from rest_errors.core.config import ErrorSettings  # noqa: E402
from rest_errors.core.formatters import FormatterChain  # noqa: E402


@pytest.fixture
def dev_settings() -> ErrorSettings:
    return ErrorSettings(environment="development", log_mode="off")


@pytest.fixture
def prod_settings() -> ErrorSettings:
    return ErrorSettings(environment="production", log_mode="off")


@pytest.fixture
def registry() -> ErrorCodeRegistry:
    """Fresh registry seeded with the built-in codes."""
    return ErrorCodeRegistry.with_builtins()


@pytest.fixture
def isolated_defaults(monkeypatch: pytest.MonkeyPatch) -> tuple[ErrorCodeRegistry, FormatterChain]:
    """Swap the process-wide registry and chain so tests can register freely."""
    registry = ErrorCodeRegistry.with_builtins()
    chain = FormatterChain.with_builtins()
    monkeypatch.setattr(codes, "default_registry", registry)
    monkeypatch.setattr(formatters, "default_chain", chain)
    return registry, chain
