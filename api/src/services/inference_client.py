"""
Inference backend client.

Provides:
- Construction of the outbound generate call (pure, no I/O)
- Execution of a built call over HTTP with aiohttp
- Decoding of the backend reply

Construction and execution are separate so the handler can stop before any
network traffic when construction fails, and so tests can swap the executor.
"""

import asyncio
import json
import time
from typing import Protocol

import aiohttp
import structlog
from pydantic import ValidationError

from api.src.config import Settings
from api.src.errors import BackendProtocolError, BackendUnavailableError, EncodingError
from api.src.models.flashcard import InferenceCall, InferencePayload, InferenceResponse
from shared.metrics import get_flashcard_metrics

logger = structlog.get_logger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


def build_inference_call(prompt: str, settings: Settings) -> InferenceCall:
    """
    Build the POST request that asks the backend to complete ``prompt``.

    Args:
        prompt: Fully rendered instruction prompt
        settings: Source of backend URL, model, stream flag and timeout

    Returns:
        Immutable call descriptor

    Raises:
        EncodingError: If the payload cannot be serialized
    """
    # ValidationError and UnicodeEncodeError are both ValueErrors.
    try:
        payload = InferencePayload(
            model=settings.ollama_model,
            prompt=prompt,
            stream=settings.ollama_stream,
        )
        body = json.dumps(payload.model_dump(), ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        logger.error("inference_payload_encoding_failed", error=str(e))
        raise EncodingError(str(e)) from e

    logger.debug(
        "inference_call_built",
        url=settings.ollama_url,
        model=settings.ollama_model,
        body_bytes=len(body)
    )

    return InferenceCall(
        method="POST",
        url=settings.ollama_url,
        headers=dict(JSON_HEADERS),
        body=body,
        timeout=settings.ollama_timeout,
    )


def parse_inference_response(raw: bytes) -> InferenceResponse:
    """
    Decode the backend reply.

    Raises:
        BackendProtocolError: If the body is not JSON or has no string ``response``
    """
    try:
        return InferenceResponse.model_validate_json(raw)
    except ValidationError as e:
        get_flashcard_metrics().inference_invalid_responses.inc()
        logger.warning(
            "inference_response_invalid",
            body_bytes=len(raw),
            errors=e.error_count()
        )
        raise BackendProtocolError(str(e)) from e


class InferenceClient(Protocol):
    """Executes a built call and returns the raw reply body."""

    async def execute(self, call: InferenceCall) -> bytes:
        ...


class AiohttpInferenceClient:
    """
    Executes inference calls with aiohttp.

    Opens one short-lived session per call; there is no connection reuse,
    retry or caching.
    """

    async def execute(self, call: InferenceCall) -> bytes:
        """
        Perform the HTTP exchange described by ``call``.

        Args:
            call: Descriptor from build_inference_call

        Returns:
            Raw response body, whatever the status code

        Raises:
            BackendUnavailableError: On connection failure or timeout
        """
        metrics = get_flashcard_metrics()
        timeout = aiohttp.ClientTimeout(total=call.timeout)
        start_time = time.perf_counter()

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    call.method,
                    call.url,
                    data=call.body,
                    headers=call.headers,
                ) as response:
                    raw = await response.read()
                    status_code = response.status

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            metrics.inference_requests.labels(outcome="unavailable").inc()
            logger.warning(
                "inference_backend_unreachable",
                url=call.url,
                error=str(e),
                error_type=type(e).__name__
            )
            raise BackendUnavailableError(str(e)) from e

        finally:
            metrics.inference_duration.observe(time.perf_counter() - start_time)

        # Decoding, and any failure of it, is counted by parse_inference_response.
        if status_code >= 400:
            metrics.inference_requests.labels(outcome="error_status").inc()
            logger.warning("inference_backend_error_status", url=call.url, status_code=status_code)
        else:
            metrics.inference_requests.labels(outcome="completed").inc()

        logger.info(
            "inference_call_completed",
            url=call.url,
            status_code=status_code,
            duration=f"{time.perf_counter() - start_time:.3f}s"
        )

        return raw
