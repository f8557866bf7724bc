"""Unit tests for the structured RestError exception."""

from __future__ import annotations

import pytest

from rest_errors.core.exceptions import ErrorList
from rest_errors.core.exceptions import RestError
from rest_errors.core.exceptions import SingleError


def test_single_error_keeps_its_fields() -> None:
    error = RestError(status=404, code="not found", message="Profile could not be found")

    assert isinstance(error.payload, SingleError)
    assert error.status == 404
    assert error.code == "not found"
    assert str(error) == "Profile could not be found"
    assert error.to_json() == {
        "status": 404,
        "errors": [{"status": 404, "code": "not found", "message": "Profile could not be found"}],
    }


def test_status_defaults_to_500() -> None:
    error = RestError(code="internal error", message="Boom")

    assert error.status == 500
    assert error.to_json()["errors"][0]["status"] == 500


def test_empty_errors_list_fails_at_construction() -> None:
    with pytest.raises(ValueError, match="zero sub-errors"):
        RestError(status=400, errors=[])


def test_error_list_uses_first_message() -> None:
    error = RestError(errors=[{"message": "m"}, {"message": "n"}])

    assert isinstance(error.payload, ErrorList)
    assert error.message == "m"
    assert str(error) == "m"


def test_error_list_falls_back_to_exception_status_and_code() -> None:
    error = RestError(
        status=400,
        code="invalid syntax",
        errors=[
            {"message": "email is not valid", "code": "validation error"},
            {"message": "public is malformed", "status": 422},
        ],
    )

    assert error.to_json() == {
        "status": 400,
        "errors": [
            {"status": 400, "code": "validation error", "message": "email is not valid"},
            {"status": 422, "code": "invalid syntax", "message": "public is malformed"},
        ],
    }


def test_serialization_leaves_out_title_and_detail() -> None:
    payload = RestError(status=403, code="forbidden", message="No").to_json()

    assert "title" not in payload["errors"][0]
    assert "detail" not in payload["errors"][0]
