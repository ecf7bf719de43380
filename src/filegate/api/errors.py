"""Mapping of internal failures to plain-text HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from filegate.core.exceptions import FileGateError

logger = logging.getLogger(__name__)


def error_response(exc: FileGateError) -> PlainTextResponse:
    """Build the response for an error, keeping its own status classification."""
    return PlainTextResponse(exc.message, status_code=exc.status_code)


async def filegate_error_handler(request: Request, exc: FileGateError) -> PlainTextResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "error": exc.message,
            },
            exc_info=exc,
        )
    return error_response(exc)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> PlainTextResponse:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{location}: {error.get('msg', 'invalid value')}")
    return PlainTextResponse("; ".join(messages) or "Invalid request", status_code=422)


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> PlainTextResponse:
    return PlainTextResponse(
        str(exc.detail), status_code=exc.status_code, headers=getattr(exc, "headers", None)
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> PlainTextResponse:
    logger.error(
        "Unexpected error",
        extra={"method": request.method, "path": request.url.path, "error": str(exc)},
        exc_info=exc,
    )
    return PlainTextResponse("Internal server error", status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FileGateError, filegate_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
