"""Custom exceptions for quiz backend errors."""
from typing import Any, Dict, Optional


class QuizAPIError(Exception):
    """Base exception for quiz backend errors."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status

    @property
    def user_message(self) -> str:
        """Single user-facing message for the terminal screen."""
        return self.message


class LoadError(QuizAPIError):
    """Test could not be fetched or has an unusable shape."""
    pass


class ValidationError(QuizAPIError):
    """Submission rejected with structured per-field errors (HTTP 422)."""

    def __init__(
        self,
        message: str,
        errors: Optional[Dict[str, Any]] = None,
        status: Optional[int] = 422,
    ):
        super().__init__(message, status)
        self.errors = errors or {}

    @property
    def user_message(self) -> str:
        text = f"Validation error ({self.status}): {self.message}."
        detail = self.first_error()
        if detail:
            text += f" Details: {detail}"
        return text

    def first_error(self) -> Optional[str]:
        """First message of the first field, Laravel-style ``{field: [msg, ...]}``."""
        if not self.errors:
            return None
        value = next(iter(self.errors.values()))
        if isinstance(value, (list, tuple)):
            return str(value[0]) if value else None
        return str(value)


class ServerError(QuizAPIError):
    """Backend returned an error status or a malformed success response."""

    @property
    def user_message(self) -> str:
        return f"Failed to save the result ({self.status or 'N/A'}): {self.message}"


class NetworkError(QuizAPIError):
    """No response received (connection failure or timeout)."""

    @property
    def user_message(self) -> str:
        return f"Network error: {self.message}"


class InvalidResponseError(ServerError):
    """API returned unexpected response format."""
    pass
