"""Exception handler registration for FastAPI applications."""

from __future__ import annotations

from collections.abc import Awaitable
from collections.abc import Callable

import logging

from fastapi import FastAPI
from fastapi import Request
from fastapi import Response
from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from rest_errors.core.codes import ErrorCodeRegistry
from rest_errors.core.config import ErrorSettings
from rest_errors.core.config import get_error_settings
from rest_errors.core.enrichment import format_timestamp
from rest_errors.core.enrichment import utc_now
from rest_errors.core.exceptions import RestError
from rest_errors.core.formatters import FormatterChain
from rest_errors.core.formatters import format_error
from rest_errors.schemas.error import ErrorEnvelope

logger = logging.getLogger(__name__)

ExceptionHandler = Callable[[Request, Exception], Awaitable[JSONResponse]]
CallNext = Callable[[Request], Awaitable[Response]]


def build_error_response(formatted: ErrorEnvelope | BaseException) -> JSONResponse:
    """Render a formatted error, degrading to an empty 500 envelope for raw exceptions."""
    if isinstance(formatted, ErrorEnvelope):
        return JSONResponse(status_code=formatted.status, content=formatted.to_body())

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "time": format_timestamp(utc_now()),
            "errors": [],
        },
    )


def create_exception_handler(
    *,
    settings: ErrorSettings | None = None,
    registry: ErrorCodeRegistry | None = None,
    chain: FormatterChain | None = None,
) -> ExceptionHandler:
    """Build a handler that formats any exception into the shared envelope."""

    async def rest_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        active_settings = settings or get_error_settings()
        try:
            formatted = format_error(exc, settings=active_settings, registry=registry, chain=chain)
            response = build_error_response(formatted)
        except Exception:
            logger.exception("Formatting %s raised; responding with an empty 500 envelope", type(exc).__name__)
            response = build_error_response(exc)

        if active_settings.should_log(response.status_code):
            logger.error(
                "%s %s failed with status %d",
                request.method,
                request.url.path,
                response.status_code,
                exc_info=exc,
            )
        return response

    return rest_exception_handler


def register_error_handlers(
    app: FastAPI,
    *,
    settings: ErrorSettings | None = None,
    registry: ErrorCodeRegistry | None = None,
    chain: FormatterChain | None = None,
) -> None:
    """Attach the REST error handler to a FastAPI app for every exception type.

    Framework and application errors go through exception handlers; anything
    else escaping a route is caught by an HTTP middleware so it is rendered
    instead of reaching the server error page.
    """

    handler = create_exception_handler(settings=settings, registry=registry, chain=chain)
    app.add_exception_handler(RequestValidationError, handler)
    app.add_exception_handler(StarletteHTTPException, handler)
    app.add_exception_handler(ValidationError, handler)
    app.add_exception_handler(RestError, handler)

    async def unhandled_exception_middleware(request: Request, call_next: CallNext) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return await handler(request, exc)

    app.middleware("http")(unhandled_exception_middleware)
