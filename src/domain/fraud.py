"""
Check-in Fraud Heuristics
=========================

Evaluated synchronously before a driver is admitted to the queue, using the
driver registry as ground truth.

Rules
-----
* ``duplicate_name``           -- a driver with this name is already bound to
  a *different* device.  Advisory, check-in proceeds.
* ``name_mismatch_on_device``  -- this device is bound to a driver with a
  *different* name.  Advisory, check-in proceeds.
* ``duplicate_device_binding`` -- this device already holds an active queue
  entry.  The check-in is rejected.

When the check-in is rejected the most specific finding is surfaced:
mismatch, then duplicate name, then the generic duplicate entry.

These are heuristics only: the device id is a self-reported, resettable
client token.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

from .enums import FraudAlertKind


class _RegisteredDriver(Protocol):
    name: str
    device_id: Optional[str]


# Lower index == more specific
SPECIFICITY: tuple[FraudAlertKind, ...] = (
    FraudAlertKind.NAME_MISMATCH_ON_DEVICE,
    FraudAlertKind.DUPLICATE_NAME,
    FraudAlertKind.DUPLICATE_DEVICE_BINDING,
)


@dataclass(frozen=True)
class FraudFinding:
    kind: FraudAlertKind
    message: str
    driver_name: str
    device_id: str


@dataclass
class FraudAssessment:
    findings: list[FraudFinding] = field(default_factory=list)
    rejected: bool = False

    @property
    def surfaced(self) -> Optional[FraudFinding]:
        """The most specific finding, or ``None`` when the check-in is clean."""
        if not self.findings:
            return None
        return min(self.findings, key=lambda f: SPECIFICITY.index(f.kind))


def evaluate_check_in(
    name: str,
    device_id: str,
    driver_by_name: Optional[_RegisteredDriver],
    driver_by_device: Optional[_RegisteredDriver],
    device_has_active_entry: bool,
) -> FraudAssessment:
    """Apply every rule and return the findings.  O(1)."""
    assessment = FraudAssessment()

    if (
        driver_by_name is not None
        and driver_by_name.device_id
        and driver_by_name.device_id != device_id
    ):
        assessment.findings.append(
            FraudFinding(
                kind=FraudAlertKind.DUPLICATE_NAME,
                message=(
                    f"Driver '{name}' is already bound to another device "
                    f"({driver_by_name.device_id})"
                ),
                driver_name=name,
                device_id=device_id,
            )
        )

    if driver_by_device is not None and driver_by_device.name != name:
        assessment.findings.append(
            FraudFinding(
                kind=FraudAlertKind.NAME_MISMATCH_ON_DEVICE,
                message=(
                    f"Device is bound to '{driver_by_device.name}' but "
                    f"checked in as '{name}'"
                ),
                driver_name=name,
                device_id=device_id,
            )
        )

    if device_has_active_entry:
        assessment.findings.append(
            FraudFinding(
                kind=FraudAlertKind.DUPLICATE_DEVICE_BINDING,
                message="Device already has an active entry in the waiting queue",
                driver_name=name,
                device_id=device_id,
            )
        )
        assessment.rejected = True

    return assessment
