# backend/app/repositories/availability_slot_repository.py
"""
AvailabilitySlot Repository for the mentorship platform.

Date ranges are half-open: ``start_date`` is included, ``end_date`` is not.
"""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.availability import AvailabilitySlot
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilitySlotRepository(BaseRepository[AvailabilitySlot]):
    """Repository for dated availability slots."""

    def __init__(self, db: Session):
        super().__init__(db, AvailabilitySlot)

    def get_slots_for_date(self, mentor_id: str, target_date: date) -> List[AvailabilitySlot]:
        """All slots of a mentor on one date, ordered by start time."""
        query = (
            self.db.query(AvailabilitySlot)
            .filter(
                AvailabilitySlot.mentor_id == mentor_id,
                AvailabilitySlot.date == target_date,
            )
            .order_by(AvailabilitySlot.start_time, AvailabilitySlot.end_time)
        )
        return self._execute_query(query)

    def get_slots_in_range(
        self,
        mentor_id: str,
        start_date: date,
        end_date: date,
        weekly: Optional[bool] = None,
    ) -> List[AvailabilitySlot]:
        """
        Slots of a mentor in ``[start_date, end_date)``.

        Args:
            weekly: Restrict to materialized (True) or one-off (False) slots
        """
        query = self.db.query(AvailabilitySlot).filter(
            AvailabilitySlot.mentor_id == mentor_id,
            AvailabilitySlot.date >= start_date,
            AvailabilitySlot.date < end_date,
        )
        if weekly is not None:
            query = query.filter(AvailabilitySlot.is_weekly_slot.is_(weekly))
        return self._execute_query(
            query.order_by(AvailabilitySlot.date, AvailabilitySlot.start_time)
        )

    def get_mentor_slot(self, mentor_id: str, slot_id: str) -> Optional[AvailabilitySlot]:
        return self.find_one_by(id=slot_id, mentor_id=mentor_id)

    def delete_weekly_slots_in_range(self, mentor_id: str, start_date: date, end_date: date) -> int:
        """
        Delete materialized slots in ``[start_date, end_date)``.

        One-off slots are left alone.

        Returns:
            Number of rows deleted
        """
        try:
            deleted = (
                self.db.query(AvailabilitySlot)
                .filter(
                    AvailabilitySlot.mentor_id == mentor_id,
                    AvailabilitySlot.date >= start_date,
                    AvailabilitySlot.date < end_date,
                    AvailabilitySlot.is_weekly_slot.is_(True),
                )
                .delete(synchronize_session=False)
            )
            return int(deleted or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting weekly slots for mentor {mentor_id}: {str(e)}")
            raise RepositoryException(f"Failed to delete weekly slots: {str(e)}") from e

    def delete_weekly_slots_before(self, cutoff: date) -> int:
        """Delete materialized slots of every mentor dated before ``cutoff``."""
        try:
            deleted = (
                self.db.query(AvailabilitySlot)
                .filter(
                    AvailabilitySlot.date < cutoff,
                    AvailabilitySlot.is_weekly_slot.is_(True),
                )
                .delete(synchronize_session=False)
            )
            return int(deleted or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error purging weekly slots before {cutoff}: {str(e)}")
            raise RepositoryException(f"Failed to purge weekly slots: {str(e)}") from e
