from __future__ import annotations

from typing import Any


class TrackerError(RuntimeError):
    """Base class for domain errors raised by the service layer."""

    code = "TRACKER_ERROR"

    def __init__(self, message: str, *, code: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}


class NotFoundError(TrackerError):
    code = "NOT_FOUND"


class DuplicateError(TrackerError):
    code = "ALREADY_EXISTS"


class PreconditionFailed(TrackerError):
    """The request is well formed but the current data forbids it."""

    code = "PRECONDITION_FAILED"


class AuthenticationRequired(TrackerError):
    code = "UNAUTHENTICATED"


class AccessDenied(TrackerError):
    code = "ACCESS_DENIED"
