"""
Token authentication middleware.

Compares a request header against a fixed expected token. Requests that do
not carry it are answered with 401 and never reach the wrapped app.
Token issuance is out of scope; this only verifies.
"""

import hmac
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from api.src.errors import AuthenticationError
from api.src.responses import error_response

logger = structlog.get_logger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Middleware to authenticate requests with a static header token.

    Sits inside RequestLoggingMiddleware so rejected requests are still
    logged.
    """

    def __init__(self, app: ASGIApp, expected_token: str, header_name: str = "token"):
        """
        Initialize auth middleware.

        Args:
            app: Wrapped ASGI application
            expected_token: Exact value the header must carry
            header_name: Request header holding the token
        """
        super().__init__(app)
        self.expected_token = expected_token
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Reject the request unless the token header matches.

        Args:
            request: HTTP request
            call_next: Next middleware in chain

        Returns:
            HTTP response
        """
        token = request.headers.get(self.header_name)

        if not self._is_valid(token):
            logger.warning(
                "auth_invalid_token",
                path=request.url.path,
                method=request.method,
                token_present=token is not None,
                client=request.client.host if request.client else None
            )
            return error_response(AuthenticationError())

        return await call_next(request)

    def _is_valid(self, token) -> bool:
        if token is None:
            return False
        return hmac.compare_digest(token.encode("utf-8"), self.expected_token.encode("utf-8"))
