"""Map exceptions raised by the application to the REST error format.

Each formatter receives the raw exception and the active settings and either
returns a candidate of the form::

    {
        "status": 400,
        "errors": [{"status": 400, "code": "invalid value", "message": "An error message"}],
    }

or ``None`` to let the next formatter try. The first candidate wins. Titles
and details are added afterwards from the code registry, and internal error
details are hidden in production.

To add a formatter, register it; it runs after the built-in recognizers and
before the production mask and the generic fallback::

    @register_formatter
    def quota_exceeded(error, settings):
        if isinstance(error, QuotaExceeded):
            return {"status": 429, "errors": [{"status": 429, "code": "quota", "message": str(error)}]}
        return None
"""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Mapping
from collections.abc import MutableMapping
from datetime import datetime
from typing import Any

import threading

from fastapi import status as http_status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.exc import DBAPIError
from starlette.exceptions import HTTPException as StarletteHTTPException

from rest_errors.core import codes
from rest_errors.core.codes import ErrorCodeRegistry
from rest_errors.core.config import ErrorSettings
from rest_errors.core.config import get_error_settings
from rest_errors.core.enrichment import add_detail
from rest_errors.core.enrichment import format_timestamp
from rest_errors.core.enrichment import utc_now
from rest_errors.core.exceptions import DEFAULT_STATUS
from rest_errors.core.exceptions import RestError
from rest_errors.schemas.error import ErrorEnvelope

Candidate = Mapping[str, Any]
Formatter = Callable[[BaseException, ErrorSettings], "Candidate | None | bool"]

AUTHORIZATION_ERROR_NAME = "AuthorizationError"
INVALID_SYNTAX_PREFIX = "invalid input syntax for"
PAYMENT_ERROR_PREFIX = "Stripe"

PAYMENT_STATUS_BY_TYPE = {
    # Card problem
    "StripeCardError": 400,
    # Probably a problem with the data we're sending
    "StripeInvalidRequestError": 400,
    # Provider internal error
    "StripeAPIError": 500,
    # Connection between us and the provider
    "StripeConnectionError": 500,
    # Bad API key
    "StripeAuthenticationError": 400,
    "StripeRateLimitError": 429,
}
PAYMENT_ERROR_FIELDS = ("code", "detail", "message", "param", "raw", "request_id", "status_code", "type")


def _status_of(error: BaseException) -> int | None:
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def _message_of(error: BaseException) -> str:
    if isinstance(error, DBAPIError) and error.orig is not None:
        return str(error.orig)
    message = getattr(error, "message", None)
    if isinstance(message, str):
        return message
    return str(error)


def _http_error_code(status_code: int) -> str:
    if status_code == http_status.HTTP_401_UNAUTHORIZED:
        return "not logged in"
    if status_code == http_status.HTTP_403_FORBIDDEN:
        return "forbidden"
    if status_code == http_status.HTTP_404_NOT_FOUND:
        return "not found"
    if status_code == http_status.HTTP_409_CONFLICT:
        return "already exists"
    if status_code >= http_status.HTTP_500_INTERNAL_SERVER_ERROR:
        return codes.INTERNAL_ERROR
    return "bad request"


def authorization_error(error: BaseException, settings: ErrorSettings) -> Candidate | None:
    """Permission denials raised by the authorization layer."""
    name = getattr(error, "name", None)
    if type(error).__name__ != AUTHORIZATION_ERROR_NAME and name != AUTHORIZATION_ERROR_NAME:
        return None

    error_detail: dict[str, Any] = {
        "message": "You are not authorized to do that",
        "status": http_status.HTTP_403_FORBIDDEN,
        "code": "unauthorized",
    }
    if not settings.is_production:
        error_detail["permission_requested"] = getattr(error, "details", None)

    return {"status": http_status.HTTP_403_FORBIDDEN, "errors": [error_detail]}


def payment_gateway_error(error: BaseException, settings: ErrorSettings) -> Candidate | None:
    """Errors raised by the payment provider client, identified by their ``type``."""
    error_type = getattr(error, "type", None)
    if not isinstance(error_type, str) or not error_type.startswith(PAYMENT_ERROR_PREFIX):
        return None

    status = PAYMENT_STATUS_BY_TYPE.get(error_type, DEFAULT_STATUS)
    message = _message_of(error)
    payment_error = {field: getattr(error, field) for field in PAYMENT_ERROR_FIELDS if hasattr(error, field)}
    payment_error["message"] = message

    return {
        "status": status,
        "errors": [
            {
                "status": status,
                "message": message,
                "code": "payment gateway error",
                "payment_error": payment_error,
            }
        ],
    }


def rest_error(error: BaseException, settings: ErrorSettings) -> Candidate | None:
    if isinstance(error, RestError):
        return error.to_json()
    return None


def invalid_syntax(error: BaseException, settings: ErrorSettings) -> Candidate | None:
    """Database rejections of malformed values, e.g. a bad uuid in a filter."""
    message = _message_of(error)
    if not message.startswith(INVALID_SYNTAX_PREFIX):
        return None

    return {
        "status": http_status.HTTP_400_BAD_REQUEST,
        "errors": [
            {
                "message": message,
                "status": http_status.HTTP_400_BAD_REQUEST,
                "code": "invalid syntax",
            }
        ],
    }


def _fill_nested_defaults(item: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    if not item.get("code"):
        item_type = item.get("type")
        item["code"] = item_type.lower() if isinstance(item_type, str) else None
    if not item.get("status"):
        item["status"] = http_status.HTTP_400_BAD_REQUEST
    return item


def _complete_nested_error(item: Any) -> MutableMapping[str, Any]:
    if isinstance(item, MutableMapping):
        return _fill_nested_defaults(item)
    if isinstance(item, Mapping):
        return _fill_nested_defaults(dict(item))
    if not hasattr(item, "__dict__"):
        return _fill_nested_defaults({"message": str(item)})

    fields = {key: value for key, value in vars(item).items() if not key.startswith("_")}
    for attr in ("message", "type", "code", "status"):
        if attr not in fields and hasattr(item, attr):
            fields[attr] = getattr(item, attr)
    _fill_nested_defaults(fields)
    try:
        item.code = fields["code"]
        item.status = fields["status"]
    except AttributeError:
        # Read-only items are reported through their copy only
        pass
    return fields


REQUEST_LOCATIONS = frozenset({"body", "query", "path", "header", "cookie"})


def _issue_field(location: Any) -> str:
    if not isinstance(location, (tuple, list)):
        return str(location)
    parts = [str(part) for part in location if part not in REQUEST_LOCATIONS]
    if parts:
        return ".".join(parts)
    return str(location[0]) if location else "request"


def _validation_issues(error: ValidationError | RequestValidationError) -> list[dict[str, Any]]:
    return [
        {
            "message": str(issue.get("msg", "Invalid value")),
            "type": issue.get("type"),
            "field": _issue_field(issue.get("loc", ())),
        }
        for issue in error.errors()
    ]


def nested_errors(error: BaseException, settings: ErrorSettings) -> Candidate | None:
    """Multi-field validation failures that expose their own list of errors.

    Sub-errors without a code get their lower-cased ``type`` and sub-errors
    without a status get 400. Entries of an ``errors`` list are updated in place.
    """
    if isinstance(error, (ValidationError, RequestValidationError)):
        items: list[Any] = _validation_issues(error)
    else:
        items = getattr(error, "errors", None)
        if not isinstance(items, list) or not items:
            return None

    return {
        "status": http_status.HTTP_400_BAD_REQUEST,
        "errors": [_complete_nested_error(item) for item in items],
    }


def http_exception(error: BaseException, settings: ErrorSettings) -> Candidate | None:
    """Starlette and FastAPI ``HTTPException`` raised from route code."""
    if not isinstance(error, StarletteHTTPException):
        return None

    status = error.status_code
    if settings.is_production and status >= http_status.HTTP_500_INTERNAL_SERVER_ERROR:
        return None

    code = _http_error_code(status)
    message = error.detail if isinstance(error.detail, str) and error.detail else "Request failed"
    if isinstance(error.detail, Mapping):
        code = str(error.detail.get("code", code))
        message = str(error.detail.get("message", message))

    return {"status": status, "errors": [{"status": status, "code": code, "message": message}]}


def production_500_mask(error: BaseException, settings: ErrorSettings) -> Candidate | None:
    """Hide the details of internal errors in production."""
    status = _status_of(error)
    if not settings.is_production or (status and status < http_status.HTTP_500_INTERNAL_SERVER_ERROR):
        return None

    status = status or DEFAULT_STATUS
    timestamp = format_timestamp(utc_now())
    return {
        "status": status,
        "errors": [
            {
                "status": status,
                "timestamp": timestamp,
                "message": f"Internal server error at {timestamp}",
                "code": codes.INTERNAL_ERROR,
            }
        ],
    }


def generic_error(error: BaseException, settings: ErrorSettings) -> Candidate:
    """Format any outstanding error with whatever fields it carries."""
    status = _status_of(error) or DEFAULT_STATUS
    code = getattr(error, "code", None)
    return {
        "status": status,
        "errors": [
            {
                "status": status,
                "message": _message_of(error),
                "code": None if code is None else str(code),
                "title": getattr(error, "title", None),
                "detail": getattr(error, "detail", None),
            }
        ],
    }


BUILTIN_FORMATTERS: tuple[Formatter, ...] = (
    authorization_error,
    payment_gateway_error,
    rest_error,
    invalid_syntax,
    nested_errors,
    http_exception,
)
TERMINAL_FORMATTERS: tuple[Formatter, ...] = (
    production_500_mask,
    generic_error,
)


class FormatterChain:
    """Ordered formatters where the first candidate wins.

    Registered formatters are appended after the built-ins but always run
    before the terminal pair, so the chain keeps its final fallback.
    """

    def __init__(
        self,
        formatters: Iterable[Formatter] = (),
        *,
        terminal: Iterable[Formatter] = (),
    ) -> None:
        self._formatters = list(formatters)
        self._terminal = tuple(terminal)
        self._lock = threading.Lock()

    @classmethod
    def with_builtins(cls) -> FormatterChain:
        return cls(BUILTIN_FORMATTERS, terminal=TERMINAL_FORMATTERS)

    @property
    def formatters(self) -> tuple[Formatter, ...]:
        return (*self._formatters, *self._terminal)

    def register(self, formatter: Formatter) -> Formatter:
        """Add ``formatter`` ahead of the terminal formatters.

        Registered formatters run after every built-in recognizer, so they can
        take over errors the production mask and generic fallback would handle
        but cannot override how the built-ins render the errors they match.
        """
        if not callable(formatter):
            raise TypeError("formatter must be callable")
        with self._lock:
            self._formatters.append(formatter)
        return formatter

    def dispatch(self, error: BaseException, settings: ErrorSettings) -> Candidate | None:
        for formatter in self.formatters:
            candidate = formatter(error, settings)
            if candidate:
                return candidate
        return None


default_chain = FormatterChain.with_builtins()


def register_formatter(formatter: Formatter) -> Formatter:
    """Add a formatter to the process-wide chain; usable as a decorator."""
    return default_chain.register(formatter)


def format_error(
    error: BaseException,
    *,
    settings: ErrorSettings | None = None,
    registry: ErrorCodeRegistry | None = None,
    chain: FormatterChain | None = None,
    now: datetime | None = None,
) -> ErrorEnvelope | BaseException:
    """Format ``error`` into an enriched envelope.

    Returns the exception itself when no formatter produced a candidate,
    which only happens for chains built without the terminal formatters.
    """
    settings = settings or get_error_settings()
    registry = registry if registry is not None else codes.default_registry
    chain = chain if chain is not None else default_chain

    candidate = chain.dispatch(error, settings)
    if not candidate:
        return error
    return add_detail(candidate, registry, settings=settings, now=now)
