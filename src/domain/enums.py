"""Domain enumerations and state-transition rules."""

import enum


class DriverStatus(str, enum.Enum):
    INACTIVE = "inactive"
    WAITING = "waiting"
    DISPATCHED = "dispatched"


# State machine: maps current status -> set of valid next statuses
DRIVER_TRANSITIONS: dict[DriverStatus, set[DriverStatus]] = {
    DriverStatus.INACTIVE: {DriverStatus.WAITING},
    DriverStatus.WAITING: {DriverStatus.DISPATCHED, DriverStatus.INACTIVE},
    DriverStatus.DISPATCHED: {DriverStatus.INACTIVE},
}


class DispatchStatus(str, enum.Enum):
    PENDING = "pending"
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


DISPATCH_TRANSITIONS: dict[DispatchStatus, set[DispatchStatus]] = {
    DispatchStatus.PENDING: {DispatchStatus.QUEUED, DispatchStatus.CANCELLED},
    DispatchStatus.QUEUED: {
        DispatchStatus.IN_PROGRESS,
        DispatchStatus.DISPATCHED,
        DispatchStatus.CANCELLED,
    },
    DispatchStatus.IN_PROGRESS: {DispatchStatus.DISPATCHED, DispatchStatus.CANCELLED},
    DispatchStatus.DISPATCHED: {DispatchStatus.COMPLETED},
    DispatchStatus.COMPLETED: set(),
    DispatchStatus.CANCELLED: set(),
}

# Records a coordinator still has to act on
ACTIVE_DISPATCH_STATUSES = (
    DispatchStatus.PENDING,
    DispatchStatus.QUEUED,
    DispatchStatus.IN_PROGRESS,
)

# Records physically waiting in the queue after "start all"
WAITING_ROOM_STATUSES = (DispatchStatus.QUEUED, DispatchStatus.IN_PROGRESS)

# Records that count as a completed outward trip for rankings
COMPLETED_TRIP_STATUSES = (DispatchStatus.DISPATCHED, DispatchStatus.COMPLETED)


class VehicleType(str, enum.Enum):
    CAR = "car"
    MOTORCYCLE = "motorcycle"


VEHICLE_ALIASES: dict[str, VehicleType] = {
    "car": VehicleType.CAR,
    "auto": VehicleType.CAR,
    "motorcycle": VehicleType.MOTORCYCLE,
    "moto": VehicleType.MOTORCYCLE,
}


class FraudAlertKind(str, enum.Enum):
    DUPLICATE_NAME = "duplicate_name"
    DUPLICATE_DEVICE_BINDING = "duplicate_device_binding"
    NAME_MISMATCH_ON_DEVICE = "name_mismatch_on_device"


class BagMovementReason(str, enum.Enum):
    DISPATCH = "dispatch"
    RETURN = "return"


class UserRole(str, enum.Enum):
    COORDINATOR = "coordinator"
    ADMIN = "admin"
