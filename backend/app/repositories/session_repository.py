# backend/app/repositories/session_repository.py
"""
MentorshipSession Repository for the mentorship platform.

Overlap uses half-open intervals: ``[s1, e1)`` and ``[s2, e2)`` overlap
when ``s1 < e2 and s2 < e1``. Only active sessions (anything except
cancelled or rejected) hold a mentor's time.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.session import INACTIVE_STATUSES, MentorshipSession
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SessionRepository(BaseRepository[MentorshipSession]):
    """Repository for mentorship sessions."""

    def __init__(self, db: Session):
        super().__init__(db, MentorshipSession)

    def find_overlapping(
        self,
        mentor_id: str,
        start: datetime,
        end: datetime,
        exclude_session_id: Optional[str] = None,
    ) -> List[MentorshipSession]:
        """
        Active sessions of a mentor overlapping ``[start, end)``.

        Args:
            mentor_id: The mentor whose calendar is checked
            start: Range start (naive UTC)
            end: Range end (naive UTC)
            exclude_session_id: Session to ignore, used when rescheduling

        Returns:
            Overlapping sessions ordered by start time
        """
        query = self.db.query(MentorshipSession).filter(
            MentorshipSession.mentor_id == mentor_id,
            MentorshipSession.status.notin_(list(INACTIVE_STATUSES)),
            MentorshipSession.start_time < end,
            MentorshipSession.end_time > start,
        )
        if exclude_session_id:
            query = query.filter(MentorshipSession.id != exclude_session_id)
        return self._execute_query(query.order_by(MentorshipSession.start_time))

    def list_for_user(self, user_id: str) -> List[MentorshipSession]:
        """Sessions where the user is mentor or mentee, newest first."""
        query = (
            self.db.query(MentorshipSession)
            .filter(
                (MentorshipSession.mentor_id == user_id)
                | (MentorshipSession.mentee_id == user_id)
            )
            .order_by(MentorshipSession.start_time.desc())
        )
        return self._execute_query(query)
