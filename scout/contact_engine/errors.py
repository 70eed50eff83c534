from __future__ import annotations


class ScoutError(Exception):
    """Base class for errors the contact engine surfaces to its callers."""


class RequestError(ScoutError):
    """Malformed or unauthenticated request; the batch never starts."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.status = status


class RateLimitExceeded(ScoutError):
    def __init__(self, action: str, limit: int, used: int):
        super().__init__(
            f"Rate limit exceeded for {action}: {used}/{limit} calls in the last hour. "
            "Try again later."
        )
        self.action = action
        self.limit = limit
        self.used = used


class RateLimitUnavailable(ScoutError):
    """The rate-limit log could not be read or written."""
