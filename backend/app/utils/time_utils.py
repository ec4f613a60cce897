from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
import re

MINUTES_PER_DAY = 24 * 60

# Same shape the client sends: "9:00" and "09:00" are both accepted
HHMM_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


def parse_hhmm(value: str) -> int:
    """
    Convert an ``HH:mm`` string to minutes since midnight.

    Raises:
        ValueError: if the value is not a valid 24-hour ``HH:mm`` time.
    """
    if not isinstance(value, str) or not HHMM_PATTERN.match(value):
        raise ValueError(f"Invalid time format {value!r}. Use HH:mm")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_hhmm(minutes: int) -> str:
    """Convert minutes since midnight to zero-padded ``HH:mm``."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def day_start(day: date) -> datetime:
    return datetime.combine(day, time.min)


def at_minutes(day: date, minutes: int) -> datetime:
    """Naive datetime ``minutes`` after midnight of ``day``."""
    return day_start(day) + timedelta(minutes=minutes)


def minutes_into_day(moment: datetime, day: date) -> int:
    """
    Minutes between midnight of ``day`` and ``moment``, clamped to the day.

    Moments before the day map to 0 and moments after it to 1440.
    """
    delta = int((moment - day_start(day)).total_seconds() // 60)
    return max(0, min(MINUTES_PER_DAY, delta))


def to_utc_naive(value: datetime) -> datetime:
    """Normalize to a naive UTC datetime; naive inputs are assumed to be UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_today() -> date:
    return utc_now().date()


def parse_iso_datetime(raw: str) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into naive UTC."""
    value = raw.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return to_utc_naive(datetime.fromisoformat(value))


def parse_iso_date(raw: str) -> date:
    """Parse ``YYYY-MM-DD``; raises ValueError otherwise."""
    return date.fromisoformat(raw.strip())
