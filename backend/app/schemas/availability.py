# backend/app/schemas/availability.py
"""
Availability schemas for the mentorship platform.

Times travel as ``HH:mm`` strings. Format and ordering checks live in the
service layer so a bad time is a 400 with a domain error code, like every
other validation failure.
"""

import datetime
from typing import Dict, List

from pydantic import Field

from .base import StandardizedModel, StrictRequestModel


class TimeSlot(StrictRequestModel):
    """One window within a day."""

    start_time: str = Field(..., examples=["09:00"])
    end_time: str = Field(..., examples=["17:00"])


class DayAvailabilityUpdate(StrictRequestModel):
    """Replace the windows of one weekday."""

    day: str = Field(..., description="Weekday name, e.g. monday")
    available: bool
    slots: List[TimeSlot] = Field(default_factory=list)


class AvailabilitySlotCreate(StrictRequestModel):
    """Add a dated slot, optionally repeated on the same weekday."""

    date: datetime.date
    start_time: str
    end_time: str
    recurring: bool = False
    number_of_weeks: int = Field(default=1, ge=1)


class TimeSlotResponse(StandardizedModel):
    start_time: str
    end_time: str


class DayAvailabilityResponse(StandardizedModel):
    available: bool
    slots: List[TimeSlotResponse]


class WeeklyAvailabilityResponse(StandardizedModel):
    mentor_id: str
    availability: Dict[str, DayAvailabilityResponse]


class AvailableWindowResponse(StandardizedModel):
    start_time: str
    end_time: str
    available_durations: List[int]


class MentorAvailabilityResponse(StandardizedModel):
    """Bookable windows for one mentor on one date."""

    mentor_id: str
    date: datetime.date
    windows: List[AvailableWindowResponse]


class AvailabilitySlotResponse(StandardizedModel):
    id: str
    mentor_id: str
    date: datetime.date
    start_time: str
    end_time: str
    is_weekly_slot: bool
