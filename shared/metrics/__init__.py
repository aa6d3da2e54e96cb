"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    FlashcardMetrics,
    get_flashcard_metrics,
    get_metrics_handler,
)

__all__ = [
    "FlashcardMetrics",
    "get_flashcard_metrics",
    "get_metrics_handler",
]
