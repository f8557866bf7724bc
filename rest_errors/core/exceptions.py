"""Structured exception carrying one or many API errors.

Raise it from request-handling code with a code, message and status; the
title and detail are looked up from the code registry when the error is
rendered, so handlers only need to name the code::

    raise RestError(status=404, code="not found", message="Profile could not be found")

    # Multiple errors, with defaults for status and code
    raise RestError(
        status=400,
        code="invalid syntax",
        errors=[
            {"message": "email is not valid", "code": "validation error"},
            {"message": "public is malformed"},
        ],
    )
"""

from __future__ import annotations

from collections.abc import Mapping
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

DEFAULT_STATUS = 500


@dataclass(frozen=True)
class SingleError:
    """Payload of a RestError built from its own code and message."""

    code: str | None
    message: str | None


@dataclass(frozen=True)
class ErrorList:
    """Payload of a RestError built from an explicit list of sub-errors."""

    errors: list[Mapping[str, Any]]


class RestError(Exception):
    """An error containing complete REST error details."""

    def __init__(
        self,
        *,
        status: int | None = None,
        code: str | None = None,
        message: str | None = None,
        errors: Sequence[Mapping[str, Any]] | None = None,
    ) -> None:
        self.status = status or DEFAULT_STATUS
        self.code = code
        self.payload: SingleError | ErrorList

        if errors is not None:
            if not errors:
                raise ValueError("cannot construct a RestError with zero sub-errors")
            self.payload = ErrorList(errors=list(errors))
            self.message = errors[0].get("message")
        else:
            self.payload = SingleError(code=code, message=message)
            self.message = message

        super().__init__(self.message)

    @property
    def errors(self) -> list[Mapping[str, Any]] | None:
        if isinstance(self.payload, ErrorList):
            return self.payload.errors
        return None

    def to_json(self) -> dict[str, Any]:
        """Convert the error to a status and list of sub-errors, without title or detail."""
        if isinstance(self.payload, ErrorList):
            errors = [
                {
                    "status": self.status if error.get("status") is None else error["status"],
                    "code": self.code if error.get("code") is None else error["code"],
                    "message": error.get("message"),
                }
                for error in self.payload.errors
            ]
        else:
            errors = [
                {
                    "status": self.status,
                    "code": self.payload.code,
                    "message": self.payload.message,
                }
            ]
        return {"status": self.status, "errors": errors}
