# backend/app/repositories/mentor_profile_repository.py
"""
MentorProfile Repository for the mentorship platform.

The profile row doubles as the per-mentor serialization point inside a
booking transaction: ``get_by_user_id(..., for_update=True)`` locks it so
concurrent reservations for one mentor queue behind each other.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.enums import MentorStatus
from ..core.exceptions import RepositoryException
from ..models.mentor import MentorProfile
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class MentorProfileRepository(BaseRepository[MentorProfile]):
    """Repository for mentor profile data access."""

    def __init__(self, db: Session):
        super().__init__(db, MentorProfile)

    def get_by_user_id(self, user_id: str, for_update: bool = False) -> Optional[MentorProfile]:
        """
        Get the profile owned by a user.

        Args:
            user_id: The mentor's user id
            for_update: Lock the profile row (PostgreSQL only)

        Returns:
            The profile, or None if the user has no mentor profile
        """
        try:
            query = self.db.query(MentorProfile).filter(MentorProfile.user_id == user_id)
            if for_update:
                query = self._maybe_for_update(query)
            else:
                query = query.options(joinedload(MentorProfile.user))
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting mentor profile for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to get mentor profile: {str(e)}") from e

    def list_approved_user_ids(self) -> List[str]:
        """User ids of every approved mentor, used by the horizon refresh job."""
        try:
            rows = (
                self.db.query(MentorProfile.user_id)
                .filter(MentorProfile.status == MentorStatus.APPROVED.value)
                .order_by(MentorProfile.user_id)
                .all()
            )
            return [row[0] for row in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing approved mentors: {str(e)}")
            raise RepositoryException(f"Failed to list approved mentors: {str(e)}") from e
