# backend/app/models/session.py
"""
Mentorship session model.

A session is a booked block of a mentor's time for one mentee. Sessions store
their own start/end timestamps (naive UTC) and price snapshot, so they remain
valid commitments regardless of later availability edits. Sessions are never
deleted; cancellation and rejection are status changes that free the time.
"""

from datetime import datetime, timedelta
from enum import Enum
import logging
from typing import Any, Dict, FrozenSet, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.ulid_helper import generate_ulid
from ..database import Base

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """Session lifecycle statuses."""

    PENDING = "pending"  # Requested by the mentee, awaiting the mentor
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CONFIRMED = "confirmed"  # Mentee confirmed attendance
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


SESSION_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.PENDING: frozenset(
        {SessionStatus.ACCEPTED, SessionStatus.REJECTED, SessionStatus.CANCELLED}
    ),
    SessionStatus.ACCEPTED: frozenset(
        {SessionStatus.CONFIRMED, SessionStatus.IN_PROGRESS, SessionStatus.CANCELLED}
    ),
    SessionStatus.CONFIRMED: frozenset({SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED}),
    SessionStatus.IN_PROGRESS: frozenset({SessionStatus.COMPLETED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
    SessionStatus.REJECTED: frozenset(),
}

# Statuses that no longer hold the mentor's time
INACTIVE_STATUSES: FrozenSet[str] = frozenset(
    {SessionStatus.CANCELLED.value, SessionStatus.REJECTED.value}
)

# Statuses from which the time can still be moved
RESCHEDULABLE_STATUSES: FrozenSet[SessionStatus] = frozenset(
    {SessionStatus.PENDING, SessionStatus.ACCEPTED}
)


class MentorshipSession(Base):
    """
    Booked session between a mentor and a mentee.

    ``end_time`` is always ``start_time + duration_minutes`` and exists so the
    overlap scan and the PostgreSQL exclusion constraint can use an index.
    """

    __tablename__ = "mentorship_sessions"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)

    mentor_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    mentee_id = Column(String(26), ForeignKey("users.id"), nullable=False)

    topic = Column(String(255), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default=SessionStatus.PENDING.value, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    accepted_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    # Cancellation tracking
    cancelled_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    mentor = relationship("User", foreign_keys=[mentor_id])
    mentee = relationship("User", foreign_keys=[mentee_id])
    cancelled_by = relationship("User", foreign_keys=[cancelled_by_id])

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'confirmed', "
            "'in_progress', 'completed', 'cancelled')",
            name="ck_mentorship_sessions_status",
        ),
        CheckConstraint("duration_minutes > 0", name="check_session_duration_positive"),
        CheckConstraint("price >= 0", name="check_session_price_non_negative"),
        CheckConstraint("end_time > start_time", name="check_session_time_order"),
        Index("ix_mentorship_sessions_mentor_start", "mentor_id", "start_time"),
        Index("ix_mentorship_sessions_mentee_start", "mentee_id", "start_time"),
    )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<MentorshipSession {self.id}: mentor={self.mentor_id}, "
            f"mentee={self.mentee_id}, start={self.start_time}, "
            f"duration={self.duration_minutes}, status={self.status}>"
        )

    @property
    def status_enum(self) -> SessionStatus:
        return SessionStatus(self.status)

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_STATUSES

    def can_transition_to(self, target: SessionStatus) -> bool:
        return target in SESSION_TRANSITIONS[self.status_enum]

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.mentor_id, self.mentee_id)

    def other_party(self, user_id: str) -> str:
        return self.mentee_id if user_id == self.mentor_id else self.mentor_id

    def move_to(self, start_time: datetime) -> None:
        """Shift the session keeping its duration."""
        self.start_time = start_time
        self.end_time = start_time + timedelta(minutes=self.duration_minutes)

    def cancel(
        self,
        cancelled_by_user_id: str,
        reason: Optional[str],
        at: datetime,
        status: SessionStatus = SessionStatus.CANCELLED,
    ) -> None:
        """Cancel (or reject) this session."""
        self.status = status.value
        self.cancelled_at = at
        self.cancelled_by_id = cancelled_by_user_id
        self.cancellation_reason = reason
        logger.info(f"Session {self.id} {status.value} by user {cancelled_by_user_id}")

    def to_notification_data(self) -> Dict[str, Any]:
        return {
            "session_id": self.id,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "duration": self.duration_minutes,
            "topic": self.topic,
        }
