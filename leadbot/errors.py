"""
Error taxonomy shared by the session, analysis and LLM layers.
Each error carries the HTTP status the API boundary reports it with.
"""

from typing import Optional


class LeadbotError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(LeadbotError):
    """Required input is missing or blank."""

    status_code = 400
    default_message = "Message and sessionId are required"


class NotFound(LeadbotError):
    """Session was deleted or never created."""

    status_code = 404
    default_message = "Conversation not found"


class CompletionError(LeadbotError):
    """Base class for completion capability failures."""


class CompletionQuotaExceeded(CompletionError):
    status_code = 402
    default_message = "API quota exceeded. Please check your LLM provider account."


class CompletionAuthError(CompletionError):
    status_code = 401
    default_message = "Invalid API key. Please check your LLM API key."


class CompletionTransientError(CompletionError):
    status_code = 500
    default_message = "Failed to get response from AI. Please try again."


class StoreUnavailable(LeadbotError):
    """Durable store call failed."""

    status_code = 503
    default_message = "Session storage is unavailable"


class MalformedExtraction(LeadbotError):
    """
    Analysis response could not be parsed as a JSON object.
    The raw model output is kept for operator diagnosis.
    """

    status_code = 502
    default_message = "Analysis response was not valid JSON"

    def __init__(self, raw_text: str, message: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text
