"""
errors.py - Failure taxonomy for the stream subsystem.

MAPPING:
- SessionIdMissingError  → 400 at connection open
- StreamNotFoundError    → 412 at connection open (retryable, "not yet")
- SubscriptionError      → in-band error message, then close
- GenerationError        → propagated to the workflow, never retried here
- ProducerStateError     → illegal producer transition (caller bug)
"""

from typing import Any


class StreamError(Exception):
    """Base exception for stream failures."""

    code = "STREAM_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class SessionIdMissingError(StreamError):
    code = "SESSION_ID_REQUIRED"

    def __init__(self, message: str = "Stream key is required"):
        super().__init__(message)


class StreamNotFoundError(StreamError):
    code = "STREAM_NOT_FOUND"

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(
            "Stream does not (yet) exist", details={"session_id": session_id}
        )


class SubscriptionError(StreamError):
    code = "SUBSCRIPTION_FAILED"


class ProducerStateError(StreamError):
    code = "INVALID_TRANSITION"


class GenerationError(StreamError):
    code = "GENERATION_FAILED"
