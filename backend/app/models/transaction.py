# backend/app/models/transaction.py
"""
Balance ledger for the mentorship platform.

Every change to ``users.balance`` writes one BalanceTransaction row in the
same database transaction, so the ledger for a user always sums to the
balance movements applied by sessions.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.ulid_helper import generate_ulid
from ..database import Base


class BalanceTransaction(Base):
    """Signed balance movement: negative amounts debit, positive amounts credit"""

    __tablename__ = "balance_transactions"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    user_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    session_id = Column(String(26), ForeignKey("mentorship_sessions.id"), nullable=True)
    related_user_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    type = Column(String(32), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", foreign_keys=[user_id], back_populates="transactions")

    __table_args__ = (
        CheckConstraint(
            "type IN ('session_payment', 'session_earning', 'session_refund')",
            name="ck_balance_transactions_type",
        ),
        Index("ix_balance_transactions_user_created", "user_id", "created_at"),
        Index("ix_balance_transactions_session", "session_id"),
    )

    def __repr__(self) -> str:
        return f"<BalanceTransaction {self.type} {self.amount} user={self.user_id}>"
