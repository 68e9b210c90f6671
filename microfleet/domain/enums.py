"""Domain enumerations and state-transition rules."""

import enum


class DriverStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    ON_TRIP = "ON_TRIP"
    INACTIVE = "INACTIVE"


class VehicleStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    IN_USE = "IN_USE"
    MAINTENANCE = "MAINTENANCE"


class TripStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"
    CANCELLED = "CANCELLED"


# State machine: maps current status -> set of valid next statuses
TRIP_TRANSITIONS: dict[TripStatus, set[TripStatus]] = {
    TripStatus.ACTIVE: {TripStatus.ENDED, TripStatus.CANCELLED},
    TripStatus.ENDED: set(),
    TripStatus.CANCELLED: set(),
}


class EntityKind(str, enum.Enum):
    DRIVER = "DRIVER"
    VEHICLE = "VEHICLE"


class ReassignmentPolicy(str, enum.Enum):
    """What ``assign`` does when the driver already holds another vehicle."""

    REJECT = "reject"
    DISPLACE = "displace"
