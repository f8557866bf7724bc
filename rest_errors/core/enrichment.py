"""Attach registry titles and details to formatted error candidates."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from datetime import timezone
from typing import Any

from pydantic_core import to_jsonable_python

from rest_errors.core.codes import ErrorCodeRegistry
from rest_errors.core.config import ErrorSettings
from rest_errors.core.config import get_error_settings
from rest_errors.schemas.error import ErrorEnvelope
from rest_errors.schemas.error import ErrorEntry
from rest_errors.schemas.error import ErrorMetadata

ENTRY_FIELDS = frozenset({"status", "code", "message", "title", "detail"})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Render ``moment`` as an ISO 8601 UTC timestamp with millisecond precision."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _optional_str(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return str(value)


def _optional_status(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _entry(error: Mapping[str, Any], metadata: ErrorMetadata, status: int | None, code: str | None) -> ErrorEntry:
    # Passthrough values may hold arbitrary objects; anything JSON can't carry is rendered with str()
    extra = {
        str(key): to_jsonable_python(value, fallback=str)
        for key, value in error.items()
        if key not in ENTRY_FIELDS
    }
    return ErrorEntry.model_validate(
        {
            **extra,
            "status": status,
            "code": code,
            "message": _optional_str(error.get("message")),
            "title": metadata.title,
            "detail": metadata.detail,
        }
    )


def add_detail(
    candidate: Mapping[str, Any] | ErrorEnvelope,
    registry: ErrorCodeRegistry,
    *,
    settings: ErrorSettings | None = None,
    now: datetime | None = None,
) -> ErrorEnvelope:
    """Copy the title and detail registered for each error code into the errors list."""
    settings = settings or get_error_settings()
    if isinstance(candidate, ErrorEnvelope):
        candidate = candidate.model_dump()

    errors: list[ErrorEntry] = []
    for error in candidate["errors"]:
        if isinstance(error, ErrorEntry):
            error = error.model_dump()
        status = _optional_status(error.get("status"))
        code = _optional_str(error.get("code"))
        metadata = registry.lookup(code, status, settings)
        errors.append(_entry(error, metadata, status, code))

    return ErrorEnvelope(
        status=candidate["status"],
        time=format_timestamp(now or utc_now()),
        errors=errors,
    )
