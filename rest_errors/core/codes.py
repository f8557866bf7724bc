"""Registry mapping error codes to their human-readable title and detail.

Title and detail are always the same for a given code, so code raising an
error only needs to name the code. Codes are part of the contract with API
clients and must stay stable; titles and details may change.
"""

from __future__ import annotations

from collections.abc import Iterable
from collections.abc import Mapping
from typing import Any

import logging

from rest_errors.core.config import ErrorSettings
from rest_errors.core.config import get_error_settings
from rest_errors.schemas.error import ErrorMetadata

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "internal error"

BUILTIN_ERROR_CODES: dict[str, dict[str, str]] = {
    "already exists": {
        "title": "That resource already exists",
        "detail": "The resource you tried to create already exists",
    },
    "bad request": {
        "title": "Bad request",
        "detail": "The request could not be understood or was not allowed",
    },
    "empty body": {
        "title": "Request body cannot be empty",
        "detail": "You did not specify any body for the request, or the data attribute of the JSON body is empty",
    },
    "forbidden": {"title": "Forbidden", "detail": "You are not permitted to do that."},
    INTERNAL_ERROR: {"title": "Internal error", "detail": "Sorry, an internal error has occurred."},
    "invalid record state": {
        "title": "The record is in an invalid state for that action",
        "detail": "You are attempting an action that is not allowed for the current state of the record",
    },
    "invalid syntax": {"title": "Invalid syntax", "detail": "A value you supplied is not in a valid format"},
    "invalid token": {"title": "Invalid access token", "detail": "The token you used to authenticate is not valid"},
    "invalid value": {"title": "Invalid value", "detail": "The value supplied is not valid"},
    "missing parameter": {"title": "Missing value", "detail": "You did not supply a required value"},
    "not found": {"title": "Not found", "detail": "That record cannot be found"},
    "not logged in": {
        "title": "You are not logged in",
        "detail": "This method is only available to logged in users",
    },
    # TODO: fold into "missing parameter" once clients stop matching on it
    "notnull violation": {
        "title": "This value cannot be null",
        "detail": "You have not specified a value that must be specified",
    },
    "payment gateway error": {
        "title": "Payment could not be processed",
        "detail": "The payment provider rejected or could not complete the request",
    },
    "restricted field": {
        "title": "Cannot update restricted field",
        "detail": "One or more fields that you included are not allowed to be set",
    },
    "unauthorized": {"title": "You are not authorized", "detail": "You are not permitted to perform that action."},
    "validation error": {"title": "Invalid value", "detail": "This value is not valid"},
}

MISSING_TITLE = "ERROR: No title has been specified for this code (or there's no code)"
EMPTY_METADATA = ErrorMetadata()


def _missing_metadata(code: Any) -> ErrorMetadata:
    return ErrorMetadata(
        title=MISSING_TITLE,
        detail=(
            f"Developer, please add a title and description for the code ({code}) "
            "and register it with register_error_code()"
        ),
    )


def _coerce_metadata(metadata: Any) -> ErrorMetadata | None:
    if isinstance(metadata, ErrorMetadata):
        candidate = metadata
    elif isinstance(metadata, Mapping):
        title = metadata.get("title")
        detail = metadata.get("detail")
        if not isinstance(title, str) or not isinstance(detail, str):
            return None
        candidate = ErrorMetadata(title=title, detail=detail)
    else:
        return None

    if not candidate.title or not candidate.detail:
        return None
    return candidate


class ErrorCodeRegistry:
    """Mutable mapping from error code to title/detail metadata."""

    def __init__(self, codes: Mapping[str, Any] | None = None) -> None:
        self._codes: dict[str, ErrorMetadata] = {}
        if codes:
            self.register_bulk(codes)

    @classmethod
    def with_builtins(cls) -> ErrorCodeRegistry:
        """Create a registry seeded with the built-in codes."""
        return cls(BUILTIN_ERROR_CODES)

    def register(self, code: Any, metadata: Any) -> str | None:
        """Add or override a code; invalid input is logged and skipped."""
        if not isinstance(code, str):
            logger.warning("Error code name must be a string, got %s", type(code).__name__)
            return None

        coerced = _coerce_metadata(metadata)
        if coerced is None:
            logger.warning("Metadata for error code %r must be a mapping with a title and detail", code)
            return None

        self._codes[code] = coerced
        return code

    def register_bulk(self, entries: Mapping[str, Any] | Iterable[Mapping[str, Any]]) -> None:
        """Register several codes, given as a mapping or a list of single-key mappings.

        Each entry goes through ``register`` so every code is validated the same way.
        """
        if isinstance(entries, Mapping):
            items: Iterable[Any] = [{code: metadata} for code, metadata in entries.items()]
        else:
            items = entries

        for item in items:
            if not isinstance(item, Mapping) or not item:
                logger.warning("Skipping error code entry that is not a non-empty mapping: %r", item)
                continue
            code = next(iter(item))
            self.register(code, item[code])

    def lookup(self, code: Any, status: int | None, settings: ErrorSettings | None = None) -> ErrorMetadata:
        """Return the metadata for ``code``, falling back by status and environment."""
        metadata = self._codes.get(code) if isinstance(code, str) else None
        if metadata is not None:
            return metadata

        # Unclassified server faults share the internal error description
        if isinstance(status, int) and status >= 500:
            return self._codes.get(INTERNAL_ERROR, EMPTY_METADATA)

        settings = settings or get_error_settings()
        if settings.is_production:
            return EMPTY_METADATA
        return _missing_metadata(code)

    def list(self) -> list[str]:
        return list(self._codes)

    def __contains__(self, code: object) -> bool:
        return code in self._codes


default_registry = ErrorCodeRegistry.with_builtins()


def register_error_code(code: Any, metadata: Any) -> str | None:
    """Add or override an error code in the process-wide registry."""
    return default_registry.register(code, metadata)


def register_error_codes(entries: Mapping[str, Any] | Iterable[Mapping[str, Any]]) -> None:
    """Add several error codes to the process-wide registry."""
    default_registry.register_bulk(entries)


def list_error_codes() -> list[str]:
    """List the codes known to the process-wide registry."""
    return default_registry.list()
