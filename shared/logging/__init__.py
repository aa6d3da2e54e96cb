"""Structured logging for the flashcard API."""

from .structured_logger import bind_context, configure_logging, shared_processors, unbind_context

__all__ = ["bind_context", "configure_logging", "shared_processors", "unbind_context"]
