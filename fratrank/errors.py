"""
Domain errors raised by the service layer and mapped to HTTP responses.
"""

from __future__ import annotations


class FratRankError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(FratRankError):
    status_code = 404


class ValidationError(FratRankError):
    status_code = 400


class PermissionDeniedError(FratRankError):
    status_code = 403


class DuplicateSubmissionError(FratRankError):
    """A vote for the same user and target is already being processed."""

    status_code = 409


class RateLimitedError(FratRankError):
    status_code = 429

    def __init__(self, action: str, limit: int, window_minutes: int, label: str):
        super().__init__(
            f"You've reached the limit of {limit} {label} per hour. "
            "Please try again later."
        )
        self.action = action
        self.limit = limit
        self.window_minutes = window_minutes


class StorageQuotaExceeded(FratRankError):
    status_code = 507


class DuplicateRecordError(Exception):
    """Unique constraint violated on create; callers fall back to update."""
