"""Prometheus metrics definitions and helpers.

Provides the metric definitions shared by the HTTP middleware and the
inference client.
"""

from functools import lru_cache
from typing import Callable

from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    REGISTRY,
    CollectorRegistry,
)


class FlashcardMetrics:
    """Flashcard API metrics."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize flashcard metrics.

        Args:
            registry: Prometheus registry to use
        """
        # Inbound requests
        self.http_requests = Counter(
            "flashcard_http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status"],
            registry=registry,
        )

        self.http_request_duration = Histogram(
            "flashcard_http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=registry,
        )

        # Outbound calls to the inference backend, one outcome per exchange:
        # completed, error_status or unavailable
        self.inference_requests = Counter(
            "flashcard_inference_requests_total",
            "Total calls to the inference backend",
            ["outcome"],
            registry=registry,
        )

        self.inference_invalid_responses = Counter(
            "flashcard_inference_invalid_responses_total",
            "Backend replies that could not be decoded",
            registry=registry,
        )

        # Generation on a small local model takes seconds to minutes
        self.inference_duration = Histogram(
            "flashcard_inference_duration_seconds",
            "Time spent waiting on the inference backend",
            buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0],
            registry=registry,
        )


@lru_cache()
def get_flashcard_metrics() -> FlashcardMetrics:
    """Return the process-wide metrics, registering them on first use."""
    return FlashcardMetrics()


def get_metrics_handler(registry: CollectorRegistry = REGISTRY) -> Callable[[], bytes]:
    """Get metrics handler for HTTP endpoint.

    Returns:
        Function that generates Prometheus metrics output
    """

    def metrics_handler() -> bytes:
        return generate_latest(registry)

    return metrics_handler
