"""Error taxonomy for content processing and the external AI provider."""

import openai


class ContentProcessingError(Exception):
    """Base exception for content processing errors."""
    category = "other"

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__doc__ or "Content processing failed"
        super().__init__(self.message)


class InvalidFileError(ContentProcessingError):
    """Raised when an image is empty, invalid or corrupted."""
    def __init__(self, filename: str = "image", message: str = ""):
        self.filename = filename
        super().__init__(message or f"Invalid or corrupted file: {filename}")


class ExternalServiceError(ContentProcessingError):
    """The AI provider failed to produce a result."""


class QuotaExceededError(ExternalServiceError):
    """AI quota exceeded, please try again later"""
    category = "quota_exceeded"


class ProviderTimeoutError(ExternalServiceError):
    """Timed out waiting for the AI provider"""
    category = "timeout"


class MalformedResponseError(ExternalServiceError):
    """The AI provider returned a response that could not be parsed"""
    category = "malformed_response"


def provider_error(exc: Exception, action: str) -> ExternalServiceError:
    """Translate an OpenAI SDK exception into the processing taxonomy."""
    if isinstance(exc, ExternalServiceError):
        return exc
    if isinstance(exc, openai.RateLimitError):
        return QuotaExceededError()
    if isinstance(exc, openai.APITimeoutError):
        return ProviderTimeoutError(f"Timed out while trying to {action}")
    if isinstance(exc, openai.APIStatusError) and exc.status_code == 429:
        return QuotaExceededError()
    return ExternalServiceError(f"Failed to {action}: {exc}")
