"""
Domain exceptions.

Each carries the HTTP status the API layer answers with, so routes never
need to translate business failures by hand.
"""

from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationFailure(DomainError):
    status_code = 422


class NotFound(DomainError):
    status_code = 404


class InvalidStateTransition(DomainError):
    """Raised when a status change violates a state machine."""

    status_code = 409


class DriverNotEligible(DomainError):
    status_code = 409


class DuplicateCheckIn(DomainError):
    """The device already holds an active queue entry."""

    status_code = 409

    def __init__(self, detail: str, alert: Optional[object] = None):
        super().__init__(detail)
        self.alert = alert


class ShiftEndBlocked(DomainError):
    status_code = 409


class BagReturnExceedsBalance(DomainError):
    status_code = 409


class OutsideGeofence(DomainError):
    status_code = 422


class ConcurrentModification(DomainError):
    status_code = 409
