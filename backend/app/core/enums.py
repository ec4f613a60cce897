# backend/app/core/enums.py
"""
Core enums for the mentorship platform.

Weekday is the only key type accepted by the weekly schedule; free-form day
names are converted at the API boundary with ``Weekday.parse``.
"""

from datetime import date
from enum import Enum


class Weekday(str, Enum):
    """Day of week, ordered Monday first to match ``date.weekday()``."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, value: date) -> "Weekday":
        return WEEKDAYS[value.weekday()]

    @classmethod
    def parse(cls, raw: str) -> "Weekday":
        """Parse a case-insensitive day name; raises ValueError for unknown days."""
        return cls(raw.strip().lower())

    @property
    def index(self) -> int:
        return WEEKDAYS.index(self)


WEEKDAYS = tuple(Weekday)


class MentorStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TransactionType(str, Enum):
    """Ledger entry types written alongside balance changes."""

    SESSION_PAYMENT = "session_payment"
    SESSION_EARNING = "session_earning"
    SESSION_REFUND = "session_refund"


class NotificationType(str, Enum):
    SESSION_CREATED = "session_created"
    SESSION_BOOKED = "session_booked"
    SESSION_ACCEPTED = "session_accepted"
    SESSION_REJECTED = "session_rejected"
    SESSION_CANCELLED = "session_cancelled"
    SESSION_RESCHEDULED = "session_rescheduled"
    SESSION_CONFIRMED = "session_confirmed"
    SESSION_STARTED = "session_started"
    SESSION_COMPLETED = "session_completed"
