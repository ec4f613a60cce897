# backend/app/models/mentor.py
"""
Mentor Profile model for the mentorship platform.

A MentorProfile turns a User into a bookable mentor. It carries the hourly
rate used to price sessions, the approval status, and the weekly schedule
document the slot materializer expands into dated slots.
"""

import logging
from typing import Any, Dict

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.enums import MentorStatus
from ..core.ulid_helper import generate_ulid
from ..database import Base
from ..domain.availability import WeeklySchedule

logger = logging.getLogger(__name__)


def _empty_weekly_availability() -> Dict[str, Any]:
    return WeeklySchedule().to_json()


class MentorProfile(Base):
    """
    Model representing a mentor's profile.

    Attributes:
        id: Primary key
        user_id: Foreign key to users table (one-to-one relationship)
        hourly_rate: Price per hour charged to mentees
        status: pending, approved or rejected; only approved mentors are bookable
        bio: Free-text description
        weekly_availability: Seven-day schedule, see app.domain.availability

    Business Rules:
        - Each user can have at most one mentor profile
        - The weekly document always carries all seven days
    """

    __tablename__ = "mentor_profiles"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    user_id = Column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    hourly_rate = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=MentorStatus.PENDING.value, index=True)
    bio = Column(Text, nullable=True)
    weekly_availability = Column(JSON, nullable=False, default=_empty_weekly_availability)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="mentor_profile")

    __table_args__ = (
        CheckConstraint("hourly_rate >= 0", name="check_hourly_rate_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_mentor_profiles_status",
        ),
    )

    @property
    def is_approved(self) -> bool:
        return self.status == MentorStatus.APPROVED.value

    @property
    def schedule(self) -> WeeklySchedule:
        return WeeklySchedule.from_json(self.weekly_availability)

    @schedule.setter
    def schedule(self, value: WeeklySchedule) -> None:
        # Reassign so the JSON column is flagged dirty
        self.weekly_availability = value.to_json()

    def __repr__(self) -> str:
        return f"<MentorProfile {self.id}: user={self.user_id}, status={self.status}>"
