"""Health and monitoring endpoints.

Exposes:
- GET /health : liveness check, no dependency checks
- GET /metrics: Prometheus scrape endpoint (only when metrics are enabled)
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST

from api.src.config import Settings
from api.src.dependencies import get_settings_dependency
from shared.metrics import get_flashcard_metrics, get_metrics_handler

router = APIRouter(tags=["Health"])
metrics_router = APIRouter(tags=["Monitoring"])


@router.get("/health")
async def health_check(settings: Settings = Depends(get_settings_dependency)) -> Dict[str, Any]:
    """Container-friendly liveness check."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@metrics_router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics in text exposition format."""
    get_flashcard_metrics()
    return Response(content=get_metrics_handler()(), media_type=CONTENT_TYPE_LATEST)
