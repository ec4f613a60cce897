"""
Notification model for the mentorship platform.

Rows are written inside the transaction of the session change that caused
them; delivery to external channels happens after commit.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from ..core.ulid_helper import generate_ulid
from ..database import Base


class Notification(Base):
    """In-app notification inbox entries."""

    __tablename__ = "notifications"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(100), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    user = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
        Index(
            "ix_notifications_user_created_at",
            "user_id",
            created_at.desc(),
        ),
    )

    def __repr__(self) -> str:
        return f"<Notification {self.type} user={self.user_id}>"


__all__ = ["Notification"]
