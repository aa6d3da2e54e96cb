"""
Flashcard request and inference models.

Pydantic schemas for:
- The inbound create request
- The outbound payload sent to the inference backend
- The backend reply
- The immutable descriptor of one outbound HTTP call
"""

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field


class CreateRequest(BaseModel):
    """Body of POST /create. A missing word decodes to the empty string."""

    model_config = ConfigDict(strict=True)

    word: str = Field(default="", description="Japanese word to build a card for")


class InferencePayload(BaseModel):
    """JSON body sent to the generate endpoint."""

    model_config = ConfigDict(frozen=True)

    model: str
    prompt: str
    stream: bool = False


class InferenceResponse(BaseModel):
    """
    Generate endpoint reply.

    Only ``response`` is read. It usually holds the flashcard JSON as a
    string and is passed through without inspection.
    """

    model_config = ConfigDict(strict=True, extra="ignore")

    response: str


class InferenceCall(BaseModel):
    """Outbound HTTP request, built but not yet executed."""

    model_config = ConfigDict(frozen=True)

    method: str = "POST"
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: bytes
    timeout: float = Field(..., gt=0)
