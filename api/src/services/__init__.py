"""Flashcard services.

This package holds the prompt builder and the inference backend client
used by the flashcard router.
"""

from api.src.services.inference_client import (
    AiohttpInferenceClient,
    InferenceClient,
    build_inference_call,
    parse_inference_response,
)
from api.src.services.prompt_builder import PROMPT_PREAMBLE, build_prompt

__all__ = [
    "AiohttpInferenceClient",
    "InferenceClient",
    "PROMPT_PREAMBLE",
    "build_inference_call",
    "build_prompt",
    "parse_inference_response",
]
