"""
Database models for the mentorship platform.

The models are organized by functionality:
- Users and mentor profiles (with the weekly schedule document)
- Dated availability slots
- Mentorship sessions
- Balance ledger and notifications
"""

from .availability import AvailabilitySlot
from .mentor import MentorProfile
from .notification import Notification
from .session import MentorshipSession, SessionStatus
from .transaction import BalanceTransaction
from .user import User

__all__ = [
    "AvailabilitySlot",
    "BalanceTransaction",
    "MentorProfile",
    "MentorshipSession",
    "Notification",
    "SessionStatus",
    "User",
]
