"""
Plain-text responses and exception handlers.

Errors are written as a short generic phrase followed by a newline.
Internal details stay in the logs.
"""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.src.errors import FlashcardError

logger = structlog.get_logger(__name__)


def text_response(message: str, status_code: int = status.HTTP_200_OK, headers=None) -> PlainTextResponse:
    """Plain-text body terminated by a newline."""
    return PlainTextResponse(f"{message}\n", status_code=status_code, headers=headers)


def error_response(exc: FlashcardError) -> PlainTextResponse:
    """Client-facing response for a pipeline error."""
    return text_response(exc.public_message, status_code=exc.status_code)


async def flashcard_exception_handler(request: Request, exc: FlashcardError) -> PlainTextResponse:
    """Handle pipeline errors."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "flashcard_request_failed",
        path=request.url.path,
        status_code=exc.status_code,
        error_type=type(exc).__name__,
        error=exc.detail
    )
    return error_response(exc)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=exc.detail
    )
    return text_response(str(exc.detail), status_code=exc.status_code, headers=exc.headers)


async def general_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unexpected_exception",
        path=request.url.path,
        error=str(exc),
        exc_info=True
    )
    return text_response("Internal server error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the plain-text handlers on ``app``."""
    app.add_exception_handler(FlashcardError, flashcard_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
