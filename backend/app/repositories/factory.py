# backend/app/repositories/factory.py
"""
Repository Factory for the mentorship platform.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_slot_repository import AvailabilitySlotRepository
    from .balance_transaction_repository import BalanceTransactionRepository
    from .mentor_profile_repository import MentorProfileRepository
    from .notification_repository import NotificationRepository
    from .session_repository import SessionRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        """Create repository for user lookups and balance locks."""
        from .user_repository import UserRepository

        return UserRepository(db)

    @staticmethod
    def create_mentor_profile_repository(db: Session) -> "MentorProfileRepository":
        """Create repository for mentor profiles."""
        from .mentor_profile_repository import MentorProfileRepository

        return MentorProfileRepository(db)

    @staticmethod
    def create_availability_slot_repository(db: Session) -> "AvailabilitySlotRepository":
        """Create repository for dated availability slots."""
        from .availability_slot_repository import AvailabilitySlotRepository

        return AvailabilitySlotRepository(db)

    @staticmethod
    def create_session_repository(db: Session) -> "SessionRepository":
        """Create repository for mentorship sessions."""
        from .session_repository import SessionRepository

        return SessionRepository(db)

    @staticmethod
    def create_balance_transaction_repository(db: Session) -> "BalanceTransactionRepository":
        """Create repository for the balance ledger."""
        from .balance_transaction_repository import BalanceTransactionRepository

        return BalanceTransactionRepository(db)

    @staticmethod
    def create_notification_repository(db: Session) -> "NotificationRepository":
        """Create repository for in-app notifications."""
        from .notification_repository import NotificationRepository

        return NotificationRepository(db)
