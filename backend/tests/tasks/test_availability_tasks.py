"""Scheduled horizon refresh."""

from datetime import timedelta
from unittest.mock import patch

from app.core.enums import MentorStatus, Weekday
from app.core.exceptions import PersistenceException
from app.domain.availability import DayAvailability, TimeWindow, WeeklySchedule
from app.models.availability import AvailabilitySlot
from app.services.availability_service import AvailabilityService
from app.tasks.availability_tasks import refresh_all_horizons, refresh_horizons
from app.tasks.beat_schedule import CELERYBEAT_SCHEDULE, get_beat_schedule
from app.tasks.celery_app import celery_app
from app.utils.time_utils import utc_today


def every_day(window: TimeWindow) -> WeeklySchedule:
    schedule = WeeklySchedule()
    for day in Weekday:
        schedule = schedule.with_day(day, DayAvailability(True, [window]))
    return schedule


def test_refreshes_every_approved_mentor(db, make_mentor):
    first = make_mentor(first_name="Ana", schedule=every_day(TimeWindow(9 * 60, 10 * 60)))
    second = make_mentor(first_name="Ben", schedule=every_day(TimeWindow(18 * 60, 19 * 60)))
    make_mentor(first_name="Cy", status=MentorStatus.PENDING, schedule=every_day(TimeWindow(0, 60)))

    start = utc_today()
    result = refresh_all_horizons(start)

    assert result["start_date"] == start.isoformat()
    assert result["mentors_refreshed"] == 2
    assert result["slots_written"] == 2 * 28
    assert result["failed_mentor_ids"] == []

    db.expire_all()
    for mentor in (first, second):
        assert db.query(AvailabilitySlot).filter_by(mentor_id=mentor.id).count() == 28


def test_running_twice_is_stable(db, make_mentor):
    mentor = make_mentor(schedule=every_day(TimeWindow(9 * 60, 10 * 60)))
    refresh_all_horizons()
    refresh_all_horizons()
    db.expire_all()
    assert db.query(AvailabilitySlot).filter_by(mentor_id=mentor.id).count() == 28


def test_one_failing_mentor_does_not_stop_the_rest(db, make_mentor):
    good = make_mentor(first_name="Gia", schedule=every_day(TimeWindow(9 * 60, 10 * 60)))
    bad = make_mentor(first_name="Hal", schedule=every_day(TimeWindow(9 * 60, 10 * 60)))
    original = AvailabilityService.refresh_horizon

    def flaky(self, mentor_id, start_date=None):
        if mentor_id == bad.id:
            raise PersistenceException()
        return original(self, mentor_id, start_date)

    with patch.object(AvailabilityService, "refresh_horizon", flaky):
        result = refresh_all_horizons()

    assert result["mentors_refreshed"] == 1
    assert result["failed_mentor_ids"] == [bad.id]
    db.expire_all()
    assert db.query(AvailabilitySlot).filter_by(mentor_id=good.id).count() == 28


def test_past_materialized_slots_are_purged(db, make_mentor):
    mentor = make_mentor(schedule=every_day(TimeWindow(9 * 60, 10 * 60)))
    yesterday = utc_today() - timedelta(days=1)
    for weekly in (True, False):
        db.add(
            AvailabilitySlot(
                mentor_id=mentor.id,
                date=yesterday,
                start_time="12:00" if weekly else "15:00",
                end_time="13:00" if weekly else "16:00",
                is_weekly_slot=weekly,
            )
        )
    db.commit()

    result = refresh_all_horizons()

    assert result["slots_purged"] == 1
    db.expire_all()
    remaining = db.query(AvailabilitySlot).filter_by(mentor_id=mentor.id, date=yesterday).all()
    assert [(slot.start_time, slot.is_weekly_slot) for slot in remaining] == [("15:00", False)]
    assert db.query(AvailabilitySlot).filter_by(mentor_id=mentor.id).count() == 29


def test_task_parses_its_date_argument(db, make_mentor):
    make_mentor(schedule=every_day(TimeWindow(9 * 60, 10 * 60)))
    start = utc_today() + timedelta(days=7)
    result = refresh_horizons.run(start.isoformat())
    assert result["start_date"] == start.isoformat()


def test_task_is_registered_and_scheduled():
    assert "availability.refresh_horizons" in celery_app.tasks
    entry = CELERYBEAT_SCHEDULE["refresh-availability-horizons"]
    assert entry["task"] == "availability.refresh_horizons"
    assert get_beat_schedule("development")["refresh-availability-horizons"]["schedule"] != (
        entry["schedule"]
    )
