"""
Middleware composition.

The chain is an ordered list of Starlette ``Middleware`` entries folded
right-to-left around a handler, so the first entry is the outermost layer:
it sees the request first and the response last.
"""

from functools import reduce
from typing import Callable, List, Sequence

import structlog
from starlette.middleware import Middleware
from starlette.types import ASGIApp

from api.src.config import Settings
from api.src.middleware.auth import AuthMiddleware
from api.src.middleware.request_logging import RequestLoggingMiddleware

logger = structlog.get_logger(__name__)


def _wrap(app: ASGIApp, layer: Middleware) -> ASGIApp:
    return layer.cls(app, *layer.args, **layer.kwargs)


def chain_middleware(middlewares: Sequence[Middleware]) -> Callable[[ASGIApp], ASGIApp]:
    """
    Compose middlewares into a single wrapper.

    Args:
        middlewares: Layers in outermost-first order

    Returns:
        Function wrapping an ASGI app in every layer
    """
    layers = tuple(middlewares)

    def wrap(app: ASGIApp) -> ASGIApp:
        return reduce(_wrap, reversed(layers), app)

    return wrap


def build_middleware(settings: Settings) -> List[Middleware]:
    """
    Middleware stack for the server.

    Logging is always outermost; the authenticator is added inside it only
    when enabled.
    """
    middlewares = [Middleware(RequestLoggingMiddleware)]

    if settings.auth_enabled:
        middlewares.append(
            Middleware(
                AuthMiddleware,
                expected_token=settings.auth_token,
                header_name=settings.auth_header,
            )
        )

    logger.info(
        "middleware_configured",
        layers=[layer.cls.__name__ for layer in middlewares]
    )
    return middlewares
