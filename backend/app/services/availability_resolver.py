# backend/app/services/availability_resolver.py
"""
Availability Resolver for the mentorship platform.

Answers "when can this mentor be booked on this date": takes the mentor's
windows for the date, cuts out every active session, and annotates each
remaining window with the session lengths that fit in it.

Windows come from the materialized AvailabilitySlot rows when any exist for
the date. Otherwise the weekly schedule is read directly, so dates past the
materialized horizon still resolve.
"""

from dataclasses import dataclass
from datetime import date, timedelta
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session

from ..core.constants import SESSION_DURATION_OPTIONS
from ..core.enums import Weekday
from ..core.exceptions import NotFoundException, ValidationException
from ..domain.availability import MIN_WINDOW_MINUTES, TimeWindow
from ..repositories import RepositoryFactory
from ..repositories.availability_slot_repository import AvailabilitySlotRepository
from ..repositories.mentor_profile_repository import MentorProfileRepository
from ..repositories.session_repository import SessionRepository
from ..repositories.user_repository import UserRepository
from ..utils.time_utils import day_start, minutes_into_day, parse_iso_date
from .base import BaseService

logger = logging.getLogger(__name__)

# Bookable session lengths in minutes
DURATION_OPTIONS: Tuple[int, ...] = SESSION_DURATION_OPTIONS


def durations_that_fit(minutes: int) -> Tuple[int, ...]:
    return tuple(duration for duration in DURATION_OPTIONS if duration <= minutes)


def subtract_busy(window: TimeWindow, busy: Sequence[TimeWindow]) -> List[TimeWindow]:
    """
    Cut every busy range out of ``window``.

    A window no busy range touches is returned unchanged. When cuts happen,
    fragments shorter than the minimum window length are dropped.
    """
    if not any(window.overlaps(block) for block in busy):
        return [window]

    fragments = [window]
    for block in sorted(busy):
        remaining: List[TimeWindow] = []
        for fragment in fragments:
            if not fragment.overlaps(block):
                remaining.append(fragment)
                continue
            if block.start > fragment.start:
                remaining.append(TimeWindow(fragment.start, block.start))
            if block.end < fragment.end:
                remaining.append(TimeWindow(block.end, fragment.end))
        fragments = remaining

    return [fragment for fragment in fragments if fragment.minutes >= MIN_WINDOW_MINUTES]


@dataclass(frozen=True)
class ResolvedWindow:
    window: TimeWindow
    available_durations: Tuple[int, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_time": self.window.start_time,
            "end_time": self.window.end_time,
            "available_durations": list(self.available_durations),
        }


def resolve_windows(
    windows: Sequence[TimeWindow], busy: Sequence[TimeWindow]
) -> List[ResolvedWindow]:
    """Free windows sorted by start time; ties keep their input order."""
    resolved = [
        ResolvedWindow(fragment, durations_that_fit(fragment.minutes))
        for window in windows
        for fragment in subtract_busy(window, busy)
    ]
    resolved.sort(key=lambda item: item.window.start)
    return resolved


class AvailabilityResolver(BaseService):
    """Computes bookable windows for one mentor on one date."""

    def __init__(
        self,
        db: Session,
        user_repository: Optional[UserRepository] = None,
        mentor_repository: Optional[MentorProfileRepository] = None,
        slot_repository: Optional[AvailabilitySlotRepository] = None,
        session_repository: Optional[SessionRepository] = None,
    ):
        super().__init__(db)
        self.user_repository = user_repository or RepositoryFactory.create_user_repository(db)
        self.mentor_repository = (
            mentor_repository or RepositoryFactory.create_mentor_profile_repository(db)
        )
        self.slot_repository = (
            slot_repository or RepositoryFactory.create_availability_slot_repository(db)
        )
        self.session_repository = (
            session_repository or RepositoryFactory.create_session_repository(db)
        )

    @BaseService.measure_operation("resolve_availability")
    def resolve(self, mentor_id: str, target_date: Union[date, str]) -> List[ResolvedWindow]:
        """
        Free windows for ``mentor_id`` on ``target_date``.

        Raises:
            ValidationException: malformed date string
            NotFoundException: unknown mentor or mentor without a profile
        """
        if isinstance(target_date, str):
            try:
                target_date = parse_iso_date(target_date)
            except ValueError:
                raise ValidationException(
                    "Invalid date format. Use YYYY-MM-DD",
                    code="INVALID_DATE",
                    details={"date": target_date},
                )

        if self.user_repository.get_by_id(mentor_id) is None:
            raise NotFoundException("Mentor not found", details={"mentor_id": mentor_id})
        profile = self.mentor_repository.get_by_user_id(mentor_id)
        if profile is None:
            raise NotFoundException("Mentor profile not found", details={"mentor_id": mentor_id})

        slots = self.slot_repository.get_slots_for_date(mentor_id, target_date)
        if slots:
            windows = [slot.window for slot in slots]
        else:
            windows = profile.schedule[Weekday.from_date(target_date)].bookable_windows

        if not windows:
            return []

        start_of_day = day_start(target_date)
        sessions = self.session_repository.find_overlapping(
            mentor_id, start_of_day, start_of_day + timedelta(days=1)
        )
        busy = [
            TimeWindow(
                minutes_into_day(session.start_time, target_date),
                minutes_into_day(session.end_time, target_date),
            )
            for session in sessions
        ]

        resolved = resolve_windows(windows, busy)
        self.logger.debug(
            "Resolved availability",
            extra={
                "mentor_id": mentor_id,
                "date": target_date.isoformat(),
                "source": "slots" if slots else "weekly",
                "windows": len(resolved),
                "sessions": len(sessions),
            },
        )
        return resolved
