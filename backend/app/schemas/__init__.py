# backend/app/schemas/__init__.py
"""Pydantic schemas for the mentorship platform."""

from .availability import (
    AvailabilitySlotCreate,
    AvailabilitySlotResponse,
    AvailableWindowResponse,
    DayAvailabilityResponse,
    DayAvailabilityUpdate,
    MentorAvailabilityResponse,
    TimeSlot,
    WeeklyAvailabilityResponse,
)
from .session import (
    SessionCancel,
    SessionCreate,
    SessionListResponse,
    SessionReschedule,
    SessionResponse,
)

__all__ = [
    "AvailabilitySlotCreate",
    "AvailabilitySlotResponse",
    "AvailableWindowResponse",
    "DayAvailabilityResponse",
    "DayAvailabilityUpdate",
    "MentorAvailabilityResponse",
    "SessionCancel",
    "SessionCreate",
    "SessionListResponse",
    "SessionReschedule",
    "SessionResponse",
    "TimeSlot",
    "WeeklyAvailabilityResponse",
]
