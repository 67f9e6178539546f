"""
Domain value objects and state-machine guards.

Patterns used
-------------
- **State Pattern** on drivers and dispatch records: every status change
  goes through ``ensure_driver_transition`` / ``ensure_dispatch_transition``
  so the lifecycle tables in ``enums`` are the single source of truth.
- ``Location`` is an immutable coordinate pair.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .enums import (
    DISPATCH_TRANSITIONS,
    DRIVER_TRANSITIONS,
    DispatchStatus,
    DriverStatus,
)
from .errors import InvalidStateTransition, ValidationFailure


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float

    @classmethod
    def from_optional(
        cls, latitude: Optional[float], longitude: Optional[float]
    ) -> Optional["Location"]:
        """Build a location only when both coordinates are present."""
        if latitude is None and longitude is None:
            return None
        if latitude is None or longitude is None:
            raise ValidationFailure("Both latitude and longitude are required")
        return cls(latitude, longitude)


# ── Transition guards ─────────────────────────────────────────────────


def ensure_driver_transition(
    current: DriverStatus, new_status: DriverStatus
) -> DriverStatus:
    """Return *new_status* if the driver may move there, else raise."""
    current = DriverStatus(current)
    if new_status not in DRIVER_TRANSITIONS.get(current, set()):
        raise InvalidStateTransition(
            f"Cannot transition driver from {current.value} to {new_status.value}"
        )
    return new_status


def ensure_dispatch_transition(
    current: DispatchStatus, new_status: DispatchStatus
) -> DispatchStatus:
    """Return *new_status* if the record may move there, else raise."""
    current = DispatchStatus(current)
    if new_status not in DISPATCH_TRANSITIONS.get(current, set()):
        raise InvalidStateTransition(
            f"Cannot transition dispatch record from {current.value} "
            f"to {new_status.value}"
        )
    return new_status


def is_terminal(status: DispatchStatus) -> bool:
    return not DISPATCH_TRANSITIONS.get(DispatchStatus(status))
