"""Custom exception hierarchy for better error handling."""
from typing import Optional

from fastapi import HTTPException, status


class SignalException(Exception):
    """Base exception for all application errors."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Internal server error"}
        )


class ContentFetchError(SignalException):
    """Raised when the content behind a URL cannot be retrieved."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Content fetch failed for {url}: {reason}")

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Content fetch failed", "message": self.reason}
        )


class EmptyContentError(SignalException):
    """Raised when a fetch succeeded but produced no usable text."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"No content extracted from {url}")

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "No content extracted from URL"}
        )


class AnalysisError(SignalException):
    """Raised when the model analysis step fails or times out."""

    def __init__(self, reason: str, expose_reason: bool = True):
        self.reason = reason
        self.expose_reason = expose_reason
        super().__init__(f"AI analysis failed: {reason}")

    def to_http_exception(self) -> HTTPException:
        detail = {"error": "AI analysis failed"}
        if self.expose_reason:
            detail["message"] = self.reason
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail
        )


class GradingError(SignalException):
    """Raised when recall grading fails."""

    def __init__(self, reason: str, expose_reason: bool = True):
        self.reason = reason
        self.expose_reason = expose_reason
        super().__init__(f"Grading failed: {reason}")

    def to_http_exception(self) -> HTTPException:
        detail = {"error": "Grading failed"}
        if self.expose_reason:
            detail["message"] = self.reason
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail
        )


class PrivacyViolationError(SignalException):
    """Raised when a relayed body carries a forbidden (user/content) key."""

    def __init__(self, key: str, path: str):
        self.key = key
        self.path = path
        super().__init__(f"Request contains forbidden fields: {key} (at {path})")

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(self)}
        )


class RelayAuthError(SignalException):
    """Raised when the relay token header is missing or wrong."""

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason or "invalid or missing relay token"
        super().__init__(self.reason)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Unauthorized: Invalid or missing relay token"}
        )


class TelemetryError(SignalException):
    """Raised by a telemetry sink that cannot deliver an event."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(message)


class PromptTemplateError(SignalException):
    """Raised when prompt template rendering fails."""

    def __init__(self, template_name: str, missing_vars: list[str]):
        self.template_name = template_name
        self.missing_vars = missing_vars
        super().__init__(
            f"Prompt template '{template_name}' missing variables: {', '.join(missing_vars)}"
        )


class ModelOutputError(SignalException):
    """Raised when a decoded model reply is not a JSON object."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid model output: {reason}")
