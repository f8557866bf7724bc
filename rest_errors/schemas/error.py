"""Error envelope schemas shared by the formatter chain and API handlers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict


class ErrorMetadata(BaseModel):
    """Human-readable title and detail that are always the same for a code."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    detail: str | None = None


class ErrorEntry(BaseModel):
    """Single reportable fault, with any extra diagnostic fields passed through."""

    model_config = ConfigDict(extra="allow")

    status: int | None = None
    code: str | None = None
    message: str | None = None
    title: str | None = None
    detail: str | None = None


class ErrorEnvelope(BaseModel):
    """Top-level API error response envelope."""

    status: int
    time: str
    errors: list[ErrorEntry]

    def to_body(self) -> dict[str, Any]:
        """Return the JSON body, omitting fields that were never set."""
        return self.model_dump(mode="json", exclude_none=True)
