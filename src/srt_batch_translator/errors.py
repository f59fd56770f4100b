"""Error types raised by the translator."""

from __future__ import annotations

from enum import Enum


class SubtitleTranslatorError(Exception):
    """Base class for all translator errors."""


class ParseError(SubtitleTranslatorError):
    """Raised when a file yields no usable subtitle entries."""


class TranslationErrorKind(Enum):
    """Semantic classes of translation failures."""
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"


class TranslationError(SubtitleTranslatorError):
    """A single translation call failed."""

    kind = TranslationErrorKind.UNKNOWN
    default_message = "Translation request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class RateLimited(TranslationError):
    kind = TranslationErrorKind.RATE_LIMITED
    default_message = "Rate limit reached, requests are too fast. Please wait a moment."


class Unauthorized(TranslationError):
    kind = TranslationErrorKind.UNAUTHORIZED
    default_message = "API key is invalid or lacks access."


class MalformedResponse(TranslationError):
    kind = TranslationErrorKind.MALFORMED_RESPONSE
    default_message = "Model response is not a valid JSON translation array"


class UnknownTranslationError(TranslationError):
    kind = TranslationErrorKind.UNKNOWN


class TranslationFailed(SubtitleTranslatorError):
    """A scheduler run was aborted by a failed batch."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(str(cause) or cause.__class__.__name__)


class JobNotFound(SubtitleTranslatorError, KeyError):
    """No job with the given id exists."""

    def __str__(self) -> str:
        return f"Job not found: {self.args[0]}" if self.args else "Job not found"


class JobStateError(SubtitleTranslatorError):
    """The requested operation is not allowed in the job's current state."""
