# backend/app/services/availability_service.py
"""
Availability Service for the mentorship platform.

Owns the mentor-facing edits to availability:
- The weekly schedule (one weekday at a time, or a full reset)
- One-off dated slots added or removed by hand

Every edit runs under the per-mentor booking lock and in one transaction.
Weekly edits re-materialize the rolling slot horizon in that same
transaction, so the stored schedule and the dated slots never disagree.
"""

from datetime import date, timedelta
import logging
from typing import Any, Iterable, List, Mapping, Optional, Union

from sqlalchemy.orm import Session

from ..core.booking_lock import mentor_booking_lock
from ..core.config import settings
from ..core.enums import MentorStatus, Weekday
from ..core.exceptions import (
    AvailabilityOverlapException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..domain.availability import DayAvailability, TimeWindow, WeeklySchedule, normalize_windows
from ..models.availability import AvailabilitySlot
from ..models.mentor import MentorProfile
from ..repositories import RepositoryFactory
from ..utils.time_utils import at_minutes, utc_today
from .base import BaseService
from .slot_materializer import SlotMaterializer

logger = logging.getLogger(__name__)

WindowInput = Union[TimeWindow, Mapping[str, Any]]


def next_occurrence(day: Weekday, today: date) -> date:
    """Today if it falls on ``day``, otherwise the next date that does."""
    return today + timedelta(days=(day.index - today.weekday()) % 7)


def parse_windows(slots: Iterable[WindowInput]) -> List[TimeWindow]:
    """
    Turn request slots into validated, sorted windows.

    Raises:
        ValidationException: bad HH:mm, end not after start, too short, or overlapping
    """
    try:
        windows = [
            slot
            if isinstance(slot, TimeWindow)
            else TimeWindow.from_hhmm(slot["start_time"], slot["end_time"])
            for slot in slots
        ]
        return normalize_windows(windows)
    except KeyError as exc:
        raise ValidationException(f"Slot is missing {exc.args[0]}", code="INVALID_SLOT")
    except ValueError as exc:
        raise ValidationException(str(exc), code="INVALID_SLOT")


class AvailabilityService(BaseService):
    """Weekly schedule store and one-off slot management."""

    def __init__(self, db: Session, materializer: Optional[SlotMaterializer] = None):
        super().__init__(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.mentor_repository = RepositoryFactory.create_mentor_profile_repository(db)
        self.slot_repository = RepositoryFactory.create_availability_slot_repository(db)
        self.session_repository = RepositoryFactory.create_session_repository(db)
        self.materializer = materializer or SlotMaterializer(
            db,
            slot_repository=self.slot_repository,
            session_repository=self.session_repository,
        )

    # Helpers

    @staticmethod
    def _ensure_owner(mentor_id: str, caller_id: str) -> None:
        if mentor_id != caller_id:
            raise ForbiddenException(
                "Not authorized to manage this mentor's availability",
                details={"mentor_id": mentor_id},
            )

    def _require_mentor_user(self, mentor_id: str) -> None:
        if self.user_repository.get_by_id(mentor_id) is None:
            raise NotFoundException("Mentor not found", details={"mentor_id": mentor_id})

    def _get_or_create_profile(self, mentor_id: str) -> MentorProfile:
        profile = self.mentor_repository.get_by_user_id(mentor_id, for_update=True)
        if profile is None:
            profile = self.mentor_repository.create(
                user_id=mentor_id,
                status=MentorStatus.PENDING.value,
                weekly_availability=WeeklySchedule().to_json(),
            )
            self.logger.info(
                "Created mentor profile on first availability edit",
                extra={"mentor_id": mentor_id},
            )
        return profile

    def _check_session_conflicts(
        self, mentor_id: str, target_date: date, windows: Iterable[TimeWindow]
    ) -> None:
        for window in windows:
            sessions = self.session_repository.find_overlapping(
                mentor_id,
                at_minutes(target_date, window.start),
                at_minutes(target_date, window.end),
            )
            if sessions:
                booked = sessions[0]
                raise AvailabilityOverlapException(
                    target_date.isoformat(),
                    str(window),
                    f"{booked.start_time:%H:%M}-{booked.end_time:%H:%M}",
                    conflict_type="session",
                )

    # Weekly schedule

    @BaseService.measure_operation("get_weekly_availability")
    def get_weekly_availability(self, mentor_id: str) -> WeeklySchedule:
        """Seven-day schedule; a mentor without a profile has every day unavailable."""
        self._require_mentor_user(mentor_id)
        profile = self.mentor_repository.get_by_user_id(mentor_id)
        return profile.schedule if profile else WeeklySchedule()

    @BaseService.measure_operation("update_day_availability")
    def update_day_availability(
        self,
        mentor_id: str,
        caller_id: str,
        day: Union[Weekday, str],
        available: bool,
        slots: Iterable[WindowInput],
    ) -> WeeklySchedule:
        """
        Replace one weekday of the schedule and re-materialize the horizon.

        Raises:
            ForbiddenException: caller is not the mentor
            ValidationException: unknown day or invalid windows
            AvailabilityOverlapException: a window overlaps a session booked on
                the next occurrence of that weekday
        """
        self._ensure_owner(mentor_id, caller_id)
        if not isinstance(day, Weekday):
            try:
                day = Weekday.parse(day)
            except ValueError:
                raise ValidationException(f"Invalid day: {day}", code="INVALID_DAY")
        windows = parse_windows(slots)

        today = utc_today()
        with mentor_booking_lock(mentor_id):
            with self.transaction():
                self._require_mentor_user(mentor_id)
                profile = self._get_or_create_profile(mentor_id)

                if available:
                    self._check_session_conflicts(mentor_id, next_occurrence(day, today), windows)

                schedule = profile.schedule.with_day(day, DayAvailability(available, windows))
                profile.schedule = schedule
                self.mentor_repository.flush()
                self.materializer.replace_horizon(mentor_id, schedule, today)

        self.log_operation(
            "update_day_availability",
            mentor_id=mentor_id,
            day=day.value,
            available=available,
            windows=len(windows),
        )
        return schedule

    @BaseService.measure_operation("initialize_weekly_availability")
    def initialize_weekly_availability(self, mentor_id: str, caller_id: str) -> WeeklySchedule:
        """Reset every weekday to unavailable and clear materialized slots."""
        self._ensure_owner(mentor_id, caller_id)
        today = utc_today()
        schedule = WeeklySchedule()
        with mentor_booking_lock(mentor_id):
            with self.transaction():
                self._require_mentor_user(mentor_id)
                profile = self._get_or_create_profile(mentor_id)
                profile.schedule = schedule
                self.mentor_repository.flush()
                self.materializer.replace_horizon(mentor_id, schedule, today)
        return schedule

    @BaseService.measure_operation("refresh_horizon")
    def refresh_horizon(self, mentor_id: str, start_date: Optional[date] = None) -> int:
        """Re-materialize the horizon from the stored schedule."""
        profile = self.mentor_repository.get_by_user_id(mentor_id)
        if profile is None:
            raise NotFoundException("Mentor profile not found", details={"mentor_id": mentor_id})
        return self.materializer.materialize(mentor_id, profile.schedule, start_date or utc_today())

    @BaseService.measure_operation("purge_past_weekly_slots")
    def purge_past_weekly_slots(self, cutoff: Optional[date] = None) -> int:
        """Drop materialized slots dated before ``cutoff`` (today by default)."""
        cutoff = cutoff or utc_today()
        with self.transaction():
            purged = self.slot_repository.delete_weekly_slots_before(cutoff)
        self.log_operation("purge_past_weekly_slots", date=cutoff.isoformat(), deleted=purged)
        return purged

    # One-off slots

    @BaseService.measure_operation("add_availability_slot")
    def add_availability_slot(
        self,
        mentor_id: str,
        caller_id: str,
        slot_date: date,
        start_time: str,
        end_time: str,
        recurring: bool = False,
        number_of_weeks: int = 1,
    ) -> List[AvailabilitySlot]:
        """
        Add a dated slot, optionally repeated weekly.

        Raises:
            ForbiddenException: caller is not the mentor
            ValidationException: invalid times, past date or week count
            AvailabilityOverlapException: overlaps an existing slot or session
        """
        self._ensure_owner(mentor_id, caller_id)
        (window,) = parse_windows([{"start_time": start_time, "end_time": end_time}])

        if slot_date < utc_today():
            raise ValidationException("Cannot add availability in the past", code="PAST_DATE")
        if recurring:
            if not 1 <= number_of_weeks <= settings.max_recurring_weeks:
                raise ValidationException(
                    f"Number of weeks must be between 1 and {settings.max_recurring_weeks}",
                    code="INVALID_WEEKS",
                    details={"number_of_weeks": number_of_weeks},
                )
        else:
            number_of_weeks = 1

        target_dates = [slot_date + timedelta(weeks=week) for week in range(number_of_weeks)]

        with mentor_booking_lock(mentor_id):
            with self.transaction():
                self._require_mentor_user(mentor_id)
                for target in target_dates:
                    for existing in self.slot_repository.get_slots_for_date(mentor_id, target):
                        if existing.window.overlaps(window):
                            raise AvailabilityOverlapException(
                                target.isoformat(), str(window), str(existing.window)
                            )
                    self._check_session_conflicts(mentor_id, target, [window])

                created = self.slot_repository.bulk_create(
                    [
                        {
                            "mentor_id": mentor_id,
                            "date": target,
                            "start_time": window.start_time,
                            "end_time": window.end_time,
                            "is_weekly_slot": False,
                        }
                        for target in target_dates
                    ]
                )

        self.log_operation(
            "add_availability_slot",
            mentor_id=mentor_id,
            date=slot_date.isoformat(),
            window=str(window),
            occurrences=len(created),
        )
        return created

    @BaseService.measure_operation("remove_availability_slot")
    def remove_availability_slot(self, mentor_id: str, caller_id: str, slot_id: str) -> None:
        """
        Delete a slot that no active session overlaps.

        Raises:
            ForbiddenException: caller is not the mentor
            NotFoundException: slot does not exist for this mentor
            ConflictException: a session is booked inside the slot
        """
        self._ensure_owner(mentor_id, caller_id)
        with mentor_booking_lock(mentor_id):
            with self.transaction():
                slot = self.slot_repository.get_mentor_slot(mentor_id, slot_id)
                if slot is None:
                    raise NotFoundException("Slot not found", details={"slot_id": slot_id})
                window = slot.window
                sessions = self.session_repository.find_overlapping(
                    mentor_id,
                    at_minutes(slot.date, window.start),
                    at_minutes(slot.date, window.end),
                )
                if sessions:
                    raise ConflictException(
                        "Cannot remove a slot with booked sessions",
                        code="SLOT_HAS_SESSIONS",
                        details={"slot_id": slot_id, "session_ids": [s.id for s in sessions]},
                    )
                self.slot_repository.delete(slot_id)
        self.log_operation("remove_availability_slot", mentor_id=mentor_id, slot_id=slot_id)

    def list_slots(self, mentor_id: str, start_date: date, days: int = 7) -> List[AvailabilitySlot]:
        self._require_mentor_user(mentor_id)
        return self.slot_repository.get_slots_in_range(
            mentor_id, start_date, start_date + timedelta(days=days)
        )
