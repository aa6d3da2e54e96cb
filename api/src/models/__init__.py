"""Data models for the FastAPI service.

This package contains Pydantic models for request/response validation
and the outbound inference call.
"""

from api.src.models.flashcard import (
    CreateRequest,
    InferenceCall,
    InferencePayload,
    InferenceResponse,
)

__all__ = [
    "CreateRequest",
    "InferenceCall",
    "InferencePayload",
    "InferenceResponse",
]
