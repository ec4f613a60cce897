# backend/app/models/availability.py
"""
Availability slot model for the mentorship platform.

An AvailabilitySlot is one dated window a mentor can be booked in. Weekly
slots (``is_weekly_slot=True``) are owned by the slot materializer and get
replaced whenever the rolling horizon is regenerated; one-off slots are
added by the mentor directly and survive regeneration.

Classes:
    AvailabilitySlot: Dated availability window
"""

import logging

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.ulid_helper import generate_ulid
from ..database import Base
from ..domain.availability import TimeWindow

logger = logging.getLogger(__name__)


class AvailabilitySlot(Base):
    """Dated availability window; times are zero-padded HH:mm strings"""

    __tablename__ = "availability_slots"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    mentor_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    is_weekly_slot = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    mentor = relationship("User")

    __table_args__ = (
        Index("idx_availability_slots_mentor_date", "mentor_id", "date", "start_time"),
    )

    @property
    def window(self) -> TimeWindow:
        return TimeWindow.from_hhmm(self.start_time, self.end_time)

    def __repr__(self) -> str:
        kind = "weekly" if self.is_weekly_slot else "one-off"
        return f"<AvailabilitySlot {self.date} {self.start_time}-{self.end_time} ({kind})>"
