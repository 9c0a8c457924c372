"""Uniform ``{"message": ...}`` error envelope for the API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from nutrition_chat.errors import (
    NutritionChatError,
    UpstreamError,
    UpstreamTimeoutError,
)

if TYPE_CHECKING:
    from fastapi import FastAPI

    from nutrition_chat.containers import AppContainer


def error_status(exc: Exception, split_upstream_status: bool) -> int:
    """Return the HTTP status for a failure.

    Every failure is a 400 unless upstream failures are configured to map to
    502, or 504 for timeouts.
    """
    if split_upstream_status:
        if isinstance(exc, UpstreamTimeoutError):
            return status.HTTP_504_GATEWAY_TIMEOUT
        if isinstance(exc, UpstreamError):
            return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_400_BAD_REQUEST


def error_response(
    container: AppContainer, exc: Exception, prefix: str | None = None
) -> JSONResponse:
    """Build the error envelope for ``exc``, optionally prefixing the message."""
    detail = exc.message if isinstance(exc, NutritionChatError) else str(exc)
    message = f"{prefix}: {detail}" if prefix else detail
    return JSONResponse(
        status_code=error_status(exc, container.settings.split_upstream_status),
        content={"message": message},
    )


def format_validation_errors(exc: RequestValidationError) -> str:
    """Flatten pydantic errors into one human-readable line."""
    parts = []
    for error in exc.errors():
        location = ".".join(
            str(part) for part in error.get("loc", ()) if part != "body"
        )
        message = error.get("msg", "Invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"


def register_error_handlers(app: FastAPI) -> None:
    """Install handlers that render failures as ``{"message": ...}``."""

    @app.exception_handler(NutritionChatError)
    async def handle_domain_error(
        request: Request, exc: NutritionChatError
    ) -> JSONResponse:
        return error_response(request.app.state.container, exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": format_validation_errors(exc)},
        )
