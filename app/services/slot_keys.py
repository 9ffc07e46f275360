"""Canonical slot identity for locking and lookup."""

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from uuid import UUID

from app.core.exceptions import InvalidSlotKindException

_DATE_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})\s*$")
_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2})(?:\.(\d{1,6}))?)?\s*$")


@dataclass(frozen=True, order=True)
class SlotKey:
    """A (property, date, time) booking unit."""

    property_id: UUID
    slot_date: date
    slot_time: time

    @property
    def lock_key(self) -> str:
        """Stable string form identifying the slot to the lock layer."""
        return f"{self.property_id}:{self.slot_date.isoformat()}:{self.slot_time.strftime('%H:%M')}"

    def __str__(self) -> str:
        return self.lock_key


def normalize_date(value: str | date | datetime) -> date:
    """
    Normalize a calendar date.

    Accepts ``date`` objects, naive ``datetime`` objects (time part must be
    midnight) and ``YYYY-MM-DD`` strings, with or without zero padding.

    Raises:
        InvalidSlotKindException: If the value is not a valid calendar date
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None or value.time() != time(0, 0):
            raise InvalidSlotKindException(f"Invalid slot date: {value!r}")
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidSlotKindException(f"Invalid slot date: {value!r}")

    match = _DATE_RE.match(value)
    if not match:
        raise InvalidSlotKindException(f"Invalid slot date: {value!r}, expected YYYY-MM-DD")

    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as e:
        raise InvalidSlotKindException(f"Invalid slot date: {value!r} ({e})") from e


def normalize_time(value: str | time) -> time:
    """
    Normalize a time of day to minute precision.

    ``10:00``, ``10:00:00`` and ``10:00:00.000`` all map to the same value.
    Seconds must be zero; slots are never finer than a minute.

    Raises:
        InvalidSlotKindException: If the value is not a valid time of day
    """
    if isinstance(value, time):
        if value.tzinfo is not None:
            raise InvalidSlotKindException(f"Invalid slot time: {value!r}, timezones are not supported")
        hour, minute, second, micro = value.hour, value.minute, value.second, value.microsecond
    elif isinstance(value, str):
        match = _TIME_RE.match(value)
        if not match:
            raise InvalidSlotKindException(f"Invalid slot time: {value!r}, expected HH:MM")
        hour, minute = int(match.group(1)), int(match.group(2))
        second = int(match.group(3) or 0)
        micro = int((match.group(4) or "0").ljust(6, "0"))
    else:
        raise InvalidSlotKindException(f"Invalid slot time: {value!r}")

    if second or micro:
        raise InvalidSlotKindException(f"Invalid slot time: {value!r}, seconds must be zero")

    try:
        return time(hour, minute)
    except ValueError as e:
        raise InvalidSlotKindException(f"Invalid slot time: {value!r} ({e})") from e


def resolve_slot_key(
    property_id: UUID | str,
    slot_date: str | date | datetime,
    slot_time: str | time,
) -> SlotKey:
    """
    Resolve a requested viewing into its canonical slot key.

    Args:
        property_id: Property being viewed
        slot_date: Requested calendar date
        slot_time: Requested time of day

    Returns:
        Normalized slot key

    Raises:
        InvalidSlotKindException: If any component is malformed
    """
    if not isinstance(property_id, UUID):
        try:
            property_id = UUID(str(property_id))
        except ValueError as e:
            raise InvalidSlotKindException(f"Invalid property id: {property_id!r}") from e

    return SlotKey(
        property_id=property_id,
        slot_date=normalize_date(slot_date),
        slot_time=normalize_time(slot_time),
    )
