"""Error taxonomy for eventsync operations."""

from typing import Dict, Optional


class EventSyncError(Exception):
    """Base class for failures surfaced to callers."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def user_message(self) -> str:
        """Human-readable text suitable for a toast or status line."""
        return self.message


class ValidationError(EventSyncError):
    """Raised before submission when a draft violates field rules.

    ``errors`` maps each violated field to its message.
    """

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        fields = ", ".join(self.errors)
        super().__init__(f"Invalid fields: {fields}")

    @property
    def user_message(self) -> str:
        return "; ".join(self.errors.values())


class NetworkError(EventSyncError):
    """Raised when the backend cannot be reached."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return "Could not reach the events server. Please try again."


class ApiError(EventSyncError):
    """Raised when the backend answers with a non-2xx status."""

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(message)

    def __str__(self) -> str:
        return f"HTTP {self.status}: {self.message}"

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    @property
    def user_message(self) -> str:
        if self.is_not_found:
            return "The requested record no longer exists."
        return self.message or f"The server rejected the request ({self.status})."


def describe_error(exc: BaseException) -> str:
    """Return a message for displaying ``exc`` to the end user."""
    if isinstance(exc, EventSyncError):
        return exc.user_message
    return str(exc) or "There was a problem. Please try again."
