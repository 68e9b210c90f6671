"""Trip lifecycle rules: ACTIVE -> ENDED | CANCELLED, both terminal."""

from __future__ import annotations

from .enums import TRIP_TRANSITIONS, TripStatus
from .errors import ConflictError


def is_terminal(status: TripStatus) -> bool:
    return not TRIP_TRANSITIONS.get(TripStatus(status), set())


def ensure_transition(current: TripStatus, target: TripStatus) -> None:
    """Raise ``ConflictError`` unless *current* may move to *target*."""
    current = TripStatus(current)
    allowed = TRIP_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise ConflictError(
            f"Cannot move trip from {current.value} to {target.value}"
        )
