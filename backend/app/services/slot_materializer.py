# backend/app/services/slot_materializer.py
"""
Slot Materializer for the mentorship platform.

Expands a mentor's weekly schedule into dated AvailabilitySlot rows for a
rolling horizon (``availability_horizon_weeks``, 4 by default). Each run
replaces every materialized slot in the horizon, so running it twice with
the same schedule and sessions leaves identical rows behind.

Windows are skipped when they would overlap a one-off slot the mentor added
by hand or an active session already booked on that date.
"""

from collections import defaultdict
from datetime import date, timedelta
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.booking_lock import mentor_booking_lock
from ..core.config import settings
from ..core.enums import Weekday
from ..core.exceptions import ValidationException
from ..domain.availability import TimeWindow, WeeklySchedule
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.availability_slot_repository import AvailabilitySlotRepository
from ..repositories.session_repository import SessionRepository
from ..utils.time_utils import at_minutes, day_start
from .base import BaseService

logger = logging.getLogger(__name__)


class SlotMaterializer(BaseService):
    """Regenerates the dated slot horizon from a weekly schedule."""

    def __init__(
        self,
        db: Session,
        slot_repository: Optional[AvailabilitySlotRepository] = None,
        session_repository: Optional[SessionRepository] = None,
    ):
        super().__init__(db)
        self.slot_repository = (
            slot_repository or RepositoryFactory.create_availability_slot_repository(db)
        )
        self.session_repository = (
            session_repository or RepositoryFactory.create_session_repository(db)
        )

    def build_slots(
        self,
        mentor_id: str,
        schedule: WeeklySchedule,
        start_date: date,
        weeks: int,
    ) -> List[Dict[str, Any]]:
        """
        Compute the slot rows for ``weeks`` weeks from ``start_date`` without writing.

        Returns:
            Row dicts ready for ``bulk_create``, ordered by date then start time
        """
        end_date = start_date + timedelta(weeks=weeks)

        one_offs: Dict[date, List[TimeWindow]] = defaultdict(list)
        for slot in self.slot_repository.get_slots_in_range(
            mentor_id, start_date, end_date, weekly=False
        ):
            one_offs[slot.date].append(slot.window)

        sessions = self.session_repository.find_overlapping(
            mentor_id, day_start(start_date), day_start(end_date)
        )

        rows: List[Dict[str, Any]] = []
        seen = set()
        for offset in range((end_date - start_date).days):
            current = start_date + timedelta(days=offset)
            day = schedule[Weekday.from_date(current)]
            for window in day.bookable_windows:
                key = (current, window.start, window.end)
                if key in seen:
                    continue
                if any(window.overlaps(other) for other in one_offs.get(current, ())):
                    continue
                window_start = at_minutes(current, window.start)
                window_end = at_minutes(current, window.end)
                if any(s.start_time < window_end and window_start < s.end_time for s in sessions):
                    continue
                seen.add(key)
                rows.append(
                    {
                        "mentor_id": mentor_id,
                        "date": current,
                        "start_time": window.start_time,
                        "end_time": window.end_time,
                        "is_weekly_slot": True,
                    }
                )
        return rows

    def replace_horizon(
        self,
        mentor_id: str,
        schedule: WeeklySchedule,
        start_date: date,
        weeks: Optional[int] = None,
    ) -> int:
        """
        Delete and re-insert materialized slots in the horizon.

        Runs inside the caller's transaction and does not commit.

        Returns:
            Number of slots written
        """
        weeks = weeks or settings.availability_horizon_weeks
        if weeks < 1:
            raise ValidationException("Horizon must be at least one week")

        rows = self.build_slots(mentor_id, schedule, start_date, weeks)
        deleted = self.slot_repository.delete_weekly_slots_in_range(
            mentor_id, start_date, start_date + timedelta(weeks=weeks)
        )
        created = self.slot_repository.bulk_create(rows)
        prometheus_metrics.record_slots_materialized(len(created))
        self.log_operation(
            "materialize_slots",
            mentor_id=mentor_id,
            start_date=start_date.isoformat(),
            weeks=weeks,
            deleted=deleted,
            written=len(created),
        )
        return len(created)

    @BaseService.measure_operation("materialize")
    def materialize(
        self,
        mentor_id: str,
        schedule: WeeklySchedule,
        start_date: date,
        weeks: Optional[int] = None,
    ) -> int:
        """Regenerate the horizon as its own transaction under the mentor lock."""
        with mentor_booking_lock(mentor_id):
            with self.transaction():
                return self.replace_horizon(mentor_id, schedule, start_date, weeks)
