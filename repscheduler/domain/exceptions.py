"""
Domain-specific exception hierarchy for the rep scheduler.
"""

from typing import Dict, Optional


class SchedulerError(Exception):
    """Base class for all application-level errors."""


class GeocodingError(SchedulerError):
    """Raised when the geocoding provider cannot be reached or answers with an error."""


class DriveTimeError(SchedulerError):
    """Raised when drive-time data cannot be fetched or parsed."""


class RateLimitExceededError(SchedulerError):
    """Raised when an operation is attempted more often than its limit allows."""

    def __init__(self, key: str, max_calls: int, window_seconds: float):
        self.key = key
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        super().__init__(
            f"Rate limit exceeded for {key}: {max_calls} calls in {window_seconds}s"
        )


# Error code fragments mapped to messages that are safe to show to a rep
_USER_MESSAGES: Dict[str, str] = {
    "permission-denied": "You don't have permission to perform this action.",
    "not-found": "The appointment could not be found.",
    "already-exists": "This appointment already exists.",
    "failed-precondition": "The appointment data is in an invalid state. Please reload and try again.",
    "unauthenticated": "Please sign in to save appointments.",
    "resource-exhausted": "Too many requests. Please wait a moment and try again.",
    "unavailable": "The service is temporarily unavailable. Please try again later.",
}

DEFAULT_USER_MESSAGE = "Something went wrong. Please try again."


class StoreError(SchedulerError):
    """
    Raised by appointment stores when a persistence operation fails.

    ``code`` is a short machine-readable reason (e.g. ``not-found``).
    """

    def __init__(self, code: str, message: str = ""):
        self.code = code or "unknown"
        self.message = message or "An unknown error occurred"
        super().__init__(f"[{self.code}] {self.message}")

    @property
    def user_message(self) -> str:
        """Return a friendly message describing the failure."""
        return describe_error_code(self.code, self.message)


def describe_error_code(code: str, message: Optional[str] = None) -> str:
    """
    Map an error code (and optionally the raw message) to a user-facing text.
    """
    for fragment, user_message in _USER_MESSAGES.items():
        if fragment in code:
            return user_message

    lowered = (message or "").lower()
    if "offline" in lowered or "network" in lowered:
        return "Network error. Please check your connection and try again."

    return DEFAULT_USER_MESSAGE
