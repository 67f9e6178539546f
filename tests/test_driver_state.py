"""Unit tests for driver and dispatch record state transitions (State Pattern)."""

import pytest

from src.domain.entities import (
    Location,
    ensure_dispatch_transition,
    ensure_driver_transition,
    is_terminal,
)
from src.domain.enums import DispatchStatus, DriverStatus
from src.domain.errors import InvalidStateTransition, ValidationFailure


class TestDriverStateMachine:
    # ── Valid transitions ─────────────────────────────────────────

    def test_inactive_to_waiting(self):
        assert (
            ensure_driver_transition(DriverStatus.INACTIVE, DriverStatus.WAITING)
            == DriverStatus.WAITING
        )

    def test_waiting_to_dispatched(self):
        assert (
            ensure_driver_transition(DriverStatus.WAITING, DriverStatus.DISPATCHED)
            == DriverStatus.DISPATCHED
        )

    def test_waiting_back_to_inactive(self):
        ensure_driver_transition(DriverStatus.WAITING, DriverStatus.INACTIVE)

    def test_dispatched_to_inactive(self):
        ensure_driver_transition(DriverStatus.DISPATCHED, DriverStatus.INACTIVE)

    def test_accepts_raw_string_status(self):
        assert (
            ensure_driver_transition("inactive", DriverStatus.WAITING)
            == DriverStatus.WAITING
        )

    # ── Invalid transitions ───────────────────────────────────────

    def test_inactive_to_dispatched_fails(self):
        """A driver must be in the queue before being dispatched."""
        with pytest.raises(InvalidStateTransition):
            ensure_driver_transition(DriverStatus.INACTIVE, DriverStatus.DISPATCHED)

    def test_dispatched_to_waiting_fails(self):
        with pytest.raises(InvalidStateTransition):
            ensure_driver_transition(DriverStatus.DISPATCHED, DriverStatus.WAITING)

    def test_waiting_to_waiting_fails(self):
        with pytest.raises(InvalidStateTransition, match="waiting to waiting"):
            ensure_driver_transition(DriverStatus.WAITING, DriverStatus.WAITING)

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            ensure_driver_transition("on_break", DriverStatus.WAITING)


class TestDispatchStateMachine:
    @pytest.mark.parametrize(
        "current, new",
        [
            (DispatchStatus.PENDING, DispatchStatus.QUEUED),
            (DispatchStatus.PENDING, DispatchStatus.CANCELLED),
            (DispatchStatus.QUEUED, DispatchStatus.IN_PROGRESS),
            (DispatchStatus.QUEUED, DispatchStatus.DISPATCHED),
            (DispatchStatus.IN_PROGRESS, DispatchStatus.DISPATCHED),
            (DispatchStatus.IN_PROGRESS, DispatchStatus.CANCELLED),
            (DispatchStatus.DISPATCHED, DispatchStatus.COMPLETED),
        ],
    )
    def test_allowed(self, current, new):
        assert ensure_dispatch_transition(current, new) == new

    def test_pending_cannot_be_dispatched_directly(self):
        with pytest.raises(InvalidStateTransition):
            ensure_dispatch_transition(DispatchStatus.PENDING, DispatchStatus.DISPATCHED)

    def test_dispatched_cannot_be_cancelled(self):
        with pytest.raises(InvalidStateTransition):
            ensure_dispatch_transition(
                DispatchStatus.DISPATCHED, DispatchStatus.CANCELLED
            )

    def test_completed_to_anything_fails(self):
        for status in DispatchStatus:
            with pytest.raises(InvalidStateTransition):
                ensure_dispatch_transition(DispatchStatus.COMPLETED, status)

    def test_cancelled_to_anything_fails(self):
        with pytest.raises(InvalidStateTransition):
            ensure_dispatch_transition(DispatchStatus.CANCELLED, DispatchStatus.PENDING)

    def test_terminal_statuses(self):
        assert is_terminal(DispatchStatus.COMPLETED)
        assert is_terminal(DispatchStatus.CANCELLED)
        assert not is_terminal(DispatchStatus.DISPATCHED)


class TestLocation:
    def test_both_missing_is_none(self):
        assert Location.from_optional(None, None) is None

    def test_half_a_coordinate_is_invalid(self):
        with pytest.raises(ValidationFailure):
            Location.from_optional(-33.5, None)

    def test_pair(self):
        assert Location.from_optional(-33.5, -70.6) == Location(-33.5, -70.6)
