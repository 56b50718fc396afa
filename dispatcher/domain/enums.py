"""Domain enumerations and state-transition rules."""

import enum


class TripStatus(str, enum.Enum):
    RESERVED = "reserved"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses
TRIP_TRANSITIONS: dict[TripStatus, set[TripStatus]] = {
    TripStatus.RESERVED: {TripStatus.ACTIVE, TripStatus.CANCELLED},
    TripStatus.ACTIVE: {TripStatus.COMPLETED, TripStatus.CANCELLED},
    TripStatus.COMPLETED: set(),
    TripStatus.CANCELLED: set(),
}

# Timestamp column stamped when a trip enters the status
TRANSITION_TIMESTAMPS: dict[TripStatus, str] = {
    TripStatus.ACTIVE: "started_at",
    TripStatus.COMPLETED: "ended_at",
    TripStatus.CANCELLED: "cancelled_at",
}

# Statuses covered by the one-trip-per-rider / per-vehicle invariant
OPEN_STATUSES: frozenset[TripStatus] = frozenset(
    {TripStatus.RESERVED, TripStatus.ACTIVE}
)


def sources_of(target: TripStatus) -> set[TripStatus]:
    """Statuses from which *target* may be entered."""
    return {
        status for status, allowed in TRIP_TRANSITIONS.items() if target in allowed
    }


class SettlementStage(str, enum.Enum):
    """Last step an end-trip run got past before failing.  Never persisted."""

    TRIP_CLOSED = "trip_closed"
    DATA_FETCHED = "data_fetched"
    FARE_COMPUTED = "fare_computed"
