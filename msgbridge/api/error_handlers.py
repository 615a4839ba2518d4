"""Rendering of ``ApiError`` values into HTTP responses.

Every variant has exactly one row in ``ERROR_RENDERINGS``: the status code,
public error code and message, and the log line emitted before responding.
Only the row's public fields reach the response body.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from msgbridge.core.logging import request_id_ctx
from msgbridge.observability.metrics import record_api_error
from msgbridge.services.errors import (
    ApiError,
    DecodeFailure,
    InvalidCredential,
    InvalidTimestamp,
    MissingCredential,
    Unexpected,
    UnexpectedStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorRendering:
    status_code: int
    error_code: str
    message: str
    log_level: int
    log_message: str


ERROR_RENDERINGS: dict[type[ApiError], ErrorRendering] = {
    MissingCredential: ErrorRendering(
        401, "missing_credential", "Missing credential", logging.WARNING,
        "request rejected: credential header missing",
    ),
    InvalidCredential: ErrorRendering(
        401, "invalid_credential", "Invalid credential", logging.WARNING,
        "request rejected: credential did not match",
    ),
    DecodeFailure: ErrorRendering(
        400, "invalid_request", "Request body could not be decoded", logging.INFO,
        "request rejected: malformed payload",
    ),
    UnexpectedStatus: ErrorRendering(
        500, "internal_error", "Unexpected error", logging.ERROR,
        "upstream returned unexpected status",
    ),
    InvalidTimestamp: ErrorRendering(
        500, "internal_error", "Unexpected error", logging.ERROR,
        "invalid timestamp in message",
    ),
    Unexpected: ErrorRendering(
        500, "internal_error", "Unexpected error", logging.ERROR,
        "unexpected failure while handling request",
    ),
}


def error_payload(status_code: int, error_code: str, message: str) -> JSONResponse:
    payload = {
        "error_code": error_code,
        "message": message,
        "request_id": request_id_ctx.get(),
    }
    return JSONResponse(status_code=status_code, content=payload)


def render_api_error(request: Request, exc: ApiError) -> JSONResponse:
    rendering = ERROR_RENDERINGS[type(exc)]
    logger.log(
        rendering.log_level,
        rendering.log_message,
        exc_info=exc if rendering.status_code >= 500 else None,
        extra={
            "error_code": rendering.error_code,
            "path": request.url.path,
            "method": request.method,
            "detail": str(exc),
        },
    )
    record_api_error(request.app.state.settings, rendering.error_code)
    return error_payload(rendering.status_code, rendering.error_code, rendering.message)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        return render_api_error(request, exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return render_api_error(request, DecodeFailure(f"{len(exc.errors())} validation errors"))
