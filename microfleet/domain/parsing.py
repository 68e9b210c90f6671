"""
Input coercion for service operations.

Callers may hand us raw request values (strings from a path or a form,
numbers from JSON), so each helper accepts either and raises
``ValidationError`` with a field-specific message on anything else.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from .errors import ValidationError

_CENTS = Decimal("0.01")
# trips.distance_km is NUMERIC(10, 2): eight integer digits
MAX_DISTANCE = Decimal(10) ** 8


def parse_id(value: Any, field: str = "id") -> int:
    """Return *value* as a positive integer id."""
    number = _as_int(value)
    if number is None or number < 1:
        raise ValidationError(f"Invalid {field}: {value!r}")
    return number


def parse_positive_int(value: Any, field: str) -> int:
    number = _as_int(value)
    if number is None or number < 1:
        raise ValidationError(f"{field} must be a positive integer")
    return number


def parse_distance(value: Any, field: str = "distance_km") -> Optional[Decimal]:
    """Parse an optional non-negative distance, rounded to two decimals."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a non-negative number")
    try:
        distance = Decimal(str(value).strip())
        if not distance.is_finite() or distance < 0:
            raise ValidationError(f"{field} must be a non-negative number")
        distance = distance.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"{field} must be a non-negative number") from None
    if distance >= MAX_DISTANCE:
        raise ValidationError(f"{field} must be less than {MAX_DISTANCE:f}")
    return distance


def parse_timestamp(value: Any, field: str = "end_time") -> Optional[datetime]:
    """Parse an optional ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"{field} is not a valid timestamp") from None
    else:
        raise ValidationError(f"{field} is not a valid timestamp")
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("+-").isdigit():
            return int(text)
    return None
