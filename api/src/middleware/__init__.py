"""FastAPI middleware components.

This package contains the request logging and token authentication
middleware and the function that folds them around the router.
"""

from api.src.middleware.auth import AuthMiddleware
from api.src.middleware.chain import build_middleware, chain_middleware
from api.src.middleware.request_logging import RequestLoggingMiddleware

__all__ = [
    "AuthMiddleware",
    "RequestLoggingMiddleware",
    "build_middleware",
    "chain_middleware",
]
