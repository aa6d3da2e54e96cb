"""
FastAPI dependency injection for the flashcard routes.

Collaborators are attached to ``app.state`` when the dispatcher is built,
so each application (and each test) can carry its own settings and
inference client.
"""

import structlog
from fastapi import Request

from api.src.config import Settings
from api.src.services.inference_client import InferenceClient

logger = structlog.get_logger(__name__)


def get_settings_dependency(request: Request) -> Settings:
    """
    Get the settings the serving application was built with.

    Example:
        @router.get("/config")
        async def get_config(settings: Settings = Depends(get_settings_dependency)):
            return {"environment": settings.environment}
    """
    return request.app.state.settings


def get_inference_client(request: Request) -> InferenceClient:
    """
    Get the client that executes inference calls.

    Raises:
        RuntimeError: If the application was built without one
    """
    client = getattr(request.app.state, "inference_client", None)
    if client is None:
        logger.error("inference_client_not_configured", path=request.url.path)
        raise RuntimeError("Inference client not configured on this application")
    return client
