# backend/app/schemas/session.py
"""Mentorship session request and response schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..core.constants import DEFAULT_SESSION_DURATION, MAX_REASON_LENGTH
from .base import Money, StandardizedModel, StrictRequestModel


class SessionCreate(StrictRequestModel):
    """
    Book a session with a mentor; the caller is the mentee.

    Missing or unknown fields fail request validation with 422.
    """

    mentor_id: str
    start_time: str = Field(..., description="ISO-8601 timestamp, UTC if no offset is given")
    duration: int = Field(
        default=DEFAULT_SESSION_DURATION, description="Length in minutes: 30, 60 or 120"
    )
    topic: str


class SessionReschedule(StrictRequestModel):
    start_time: str = Field(..., description="New ISO-8601 start timestamp")


class SessionCancel(StrictRequestModel):
    reason: Optional[str] = Field(default=None, max_length=MAX_REASON_LENGTH)


class SessionResponse(StandardizedModel):
    id: str
    mentor_id: str
    mentee_id: str
    topic: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    price: Money
    status: str
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by_id: Optional[str] = None
    cancellation_reason: Optional[str] = None


class SessionListResponse(StandardizedModel):
    sessions: List[SessionResponse]
    total: int
