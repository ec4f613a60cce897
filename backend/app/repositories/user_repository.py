# backend/app/repositories/user_repository.py
"""
User Repository for the mentorship platform.

Balance changes go through ``get_for_balance_update`` so the user row is
locked for the rest of the transaction on PostgreSQL.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user lookups and balance row locking."""

    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_active(self, user_id: str) -> Optional[User]:
        user = self.get_by_id(user_id)
        if user is None or not user.is_active:
            return None
        return user

    def get_for_balance_update(self, user_id: str) -> Optional[User]:
        """Load a user holding a row lock until the transaction ends."""
        return self.get_by_id(user_id, for_update=True)
