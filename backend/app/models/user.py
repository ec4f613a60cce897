# backend/app/models/user.py
"""
User model for the mentorship platform.

A single users table represents both mentors and mentees; a user acts as a
mentor when a MentorProfile row points at it. The balance column is the
prepaid credit a mentee spends on sessions and a mentor earns from them.
"""

from decimal import Decimal
import logging

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.ulid_helper import generate_ulid
from ..database import Base

logger = logging.getLogger(__name__)


class User(Base):
    """
    Platform account.

    Attributes:
        id: ULID primary key
        email: Unique email address
        first_name: User's first name
        last_name: User's last name
        is_active: Whether the account may book or be booked
        balance: Spendable credit in dollars, never negative

    Relationships:
        mentor_profile: One-to-one with MentorProfile (mentors only)
        transactions: Ledger rows recording every balance change
    """

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    balance = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    mentor_profile = relationship(
        "MentorProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    transactions = relationship(
        "BalanceTransaction",
        foreign_keys="BalanceTransaction.user_id",
        back_populates="user",
        order_by="BalanceTransaction.created_at",
    )

    __table_args__ = (CheckConstraint("balance >= 0", name="check_balance_non_negative"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email}, balance={self.balance}>"
