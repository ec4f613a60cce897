# backend/app/repositories/__init__.py
"""
Repository Pattern Implementation for the mentorship platform.

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Foundation for all repositories with generic CRUD operations
- RepositoryFactory: Factory for creating repository instances
- AvailabilitySlotRepository: Dated slots written by the materializer or the mentor
- SessionRepository: Session overlap scans and per-user listings
- MentorProfileRepository / UserRepository: Profile and balance row access

Usage:
    from app.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_session_repository(db)
    conflicts = repository.find_overlapping(mentor_id, start, end)
"""

from .availability_slot_repository import AvailabilitySlotRepository
from .balance_transaction_repository import BalanceTransactionRepository
from .base_repository import BaseRepository
from .factory import RepositoryFactory
from .mentor_profile_repository import MentorProfileRepository
from .notification_repository import NotificationRepository
from .session_repository import SessionRepository
from .user_repository import UserRepository

__all__ = [
    "AvailabilitySlotRepository",
    "BalanceTransactionRepository",
    "BaseRepository",
    "MentorProfileRepository",
    "NotificationRepository",
    "RepositoryFactory",
    "SessionRepository",
    "UserRepository",
]
