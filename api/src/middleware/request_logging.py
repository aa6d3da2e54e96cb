"""
Request logging middleware.

Logs every request before it reaches the router, whatever happens further
in, and records Prometheus request metrics. Never short-circuits.
"""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import Scope

from shared.logging import bind_context, unbind_context
from shared.metrics import get_flashcard_metrics

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# Label for requests answered before routing (for example a rejected token).
UNROUTED_ENDPOINT = "unrouted"

# Routes accept any method name; anything else is counted as OTHER.
KNOWN_METHODS = frozenset(
    ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "CONNECT"]
)


def method_label(method: str) -> str:
    """Metric label for the request method."""
    return method if method in KNOWN_METHODS else "OTHER"


def endpoint_label(scope: Scope) -> str:
    """
    Metric label for the route that served the request.

    Uses the matched route template under its mount prefix, never the raw
    path, so catch-all traffic folds into one series per template.
    """
    route = scope.get("route")
    if route is None:
        return UNROUTED_ENDPOINT
    return scope.get("root_path", "") + route.path


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging and metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Log method and path, then delegate."""
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        method = request.method
        path = request.url.path
        metrics = get_flashcard_metrics()

        bind_context(correlation_id=correlation_id)
        start_time = time.perf_counter()

        logger.info(
            "request_started",
            method=method,
            path=path,
            client_ip=request.client.host if request.client else "unknown"
        )

        try:
            response = await call_next(request)

            duration = time.perf_counter() - start_time
            # Routing has filled in the shared scope by now.
            endpoint = endpoint_label(request.scope)
            metrics.http_requests.labels(
                method=method_label(method),
                endpoint=endpoint,
                status=response.status_code
            ).inc()
            metrics.http_request_duration.labels(method=method_label(method), endpoint=endpoint).observe(duration)

            logger.info(
                "request_completed",
                method=method,
                path=path,
                endpoint=endpoint,
                status_code=response.status_code,
                duration=f"{duration:.3f}s"
            )

            response.headers[CORRELATION_HEADER] = correlation_id
            return response

        except Exception as e:
            logger.error(
                "request_failed",
                method=method,
                path=path,
                error=str(e),
                duration=f"{time.perf_counter() - start_time:.3f}s",
                exc_info=True
            )
            raise

        finally:
            unbind_context("correlation_id")
