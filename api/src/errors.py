"""
Error kinds raised along the flashcard pipeline.

Every error carries the HTTP status it maps to and a short public message.
The message is what the client sees; the cause is only logged.
"""

from fastapi import status


class FlashcardError(Exception):
    """Base class for request-terminating pipeline errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message: str = "Flashcard could not be generated"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.public_message)
        self.detail = detail


class ClientInputError(FlashcardError):
    """Inbound body is not a valid CreateRequest."""

    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Invalid request body"


class RequestBodyError(FlashcardError):
    """Inbound body could not be read."""


class EncodingError(FlashcardError):
    """Outbound payload could not be serialized."""


class BackendUnavailableError(FlashcardError):
    """Transport-level failure reaching the inference backend."""

    status_code = status.HTTP_502_BAD_GATEWAY
    public_message = "Inference backend unavailable"


class BackendProtocolError(FlashcardError):
    """Backend replied with non-JSON or an unexpected shape."""


class AuthenticationError(FlashcardError):
    """Missing or invalid token header."""

    status_code = status.HTTP_401_UNAUTHORIZED
    public_message = "Authentication failed. Invalid token"


class ServerError(Exception):
    """The HTTP listener stopped on a fatal error."""
