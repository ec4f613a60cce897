"""AvailabilityResolver: free windows for one mentor on one date."""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.enums import MentorStatus, Weekday
from app.core.exceptions import (
    BookingConflictException,
    NotFoundException,
    ValidationException,
)
from app.domain.availability import DayAvailability, TimeWindow, WeeklySchedule
from app.models.availability import AvailabilitySlot
from app.services.availability_resolver import AvailabilityResolver
from app.services.availability_service import AvailabilityService
from app.services.session_service import SessionService
from app.utils.time_utils import at_minutes, utc_today


@pytest.fixture
def target():
    return utc_today() + timedelta(days=3)


@pytest.fixture
def weekly_mentor(make_mentor, target):
    schedule = WeeklySchedule().with_day(
        Weekday.from_date(target),
        DayAvailability(True, [TimeWindow(9 * 60, 12 * 60), TimeWindow(14 * 60, 15 * 60)]),
    )
    return make_mentor(first_name="Wren", schedule=schedule)


@pytest.fixture
def resolver(db):
    return AvailabilityResolver(db)


def as_tuples(resolved):
    return [
        (item.window.start_time, item.window.end_time, list(item.available_durations))
        for item in resolved
    ]


def test_falls_back_to_weekly_schedule(resolver, weekly_mentor, target):
    assert as_tuples(resolver.resolve(weekly_mentor.id, target)) == [
        ("09:00", "12:00", [30, 60, 120]),
        ("14:00", "15:00", [30, 60]),
    ]


def test_accepts_iso_date_string(resolver, weekly_mentor, target):
    assert len(resolver.resolve(weekly_mentor.id, target.isoformat())) == 2


def test_malformed_date(resolver, weekly_mentor):
    with pytest.raises(ValidationException) as exc:
        resolver.resolve(weekly_mentor.id, "2024-13-45")
    assert exc.value.code == "INVALID_DATE"


def test_unknown_mentor(resolver, target):
    with pytest.raises(NotFoundException):
        resolver.resolve("01HZZZZZZZZZZZZZZZZZZZZZZZ", target)


def test_user_without_profile(resolver, mentee, target):
    with pytest.raises(NotFoundException):
        resolver.resolve(mentee.id, target)


def test_day_without_availability_is_empty(resolver, weekly_mentor, target):
    assert resolver.resolve(weekly_mentor.id, target + timedelta(days=1)) == []


def test_dated_slots_override_weekly_schedule(db, resolver, weekly_mentor, target):
    AvailabilityService(db).add_availability_slot(
        weekly_mentor.id, weekly_mentor.id, target, "18:00", "20:00"
    )
    assert as_tuples(resolver.resolve(weekly_mentor.id, target)) == [
        ("18:00", "20:00", [30, 60, 120]),
    ]


def test_sessions_are_subtracted(db, resolver, weekly_mentor, mentee, target):
    SessionService(db).create_session(
        mentee.id, weekly_mentor.id, at_minutes(target, 10 * 60), "Resume review"
    )
    assert as_tuples(resolver.resolve(weekly_mentor.id, target)) == [
        ("09:00", "10:00", [30, 60]),
        ("11:00", "12:00", [30, 60]),
        ("14:00", "15:00", [30, 60]),
    ]


def test_fragments_too_short_to_book_are_dropped(db, resolver, weekly_mentor, mentee, target):
    SessionService(db).create_session(
        mentee.id, weekly_mentor.id, at_minutes(target, 14 * 60 + 15), "Quick sync", 30
    )
    assert as_tuples(resolver.resolve(weekly_mentor.id, target)) == [
        ("09:00", "12:00", [30, 60, 120]),
    ]


def test_cancelled_sessions_free_the_time(db, resolver, weekly_mentor, mentee, target):
    sessions = SessionService(db)
    booked = sessions.create_session(
        mentee.id, weekly_mentor.id, at_minutes(target, 9 * 60), "Mock interview", 120
    )
    sessions.cancel_session(booked.id, mentee.id)
    assert len(resolver.resolve(weekly_mentor.id, target)) == 2


def test_pending_mentor_is_still_resolvable(resolver, make_mentor, target):
    pending = make_mentor(first_name="Pia", status=MentorStatus.PENDING)
    assert resolver.resolve(pending.id, target) == []


def test_weekly_schedule_to_booking_end_to_end(db, resolver, make_mentor, make_user):
    mentor = make_mentor(first_name="Ada", hourly_rate=Decimal("40.00"))
    first = make_user(first_name="Finn", balance=Decimal("100.00"))
    second = make_user(first_name="Sage", balance=Decimal("100.00"))
    today = utc_today()
    next_monday = today + timedelta(days=(-today.weekday()) % 7 or 7)

    AvailabilityService(db).update_day_availability(
        mentor.id, mentor.id, "Monday", True, [{"start_time": "09:00", "end_time": "17:00"}]
    )
    slots = (
        db.query(AvailabilitySlot)
        .filter_by(mentor_id=mentor.id, date=next_monday, is_weekly_slot=True)
        .all()
    )
    assert [(slot.start_time, slot.end_time) for slot in slots] == [("09:00", "17:00")]
    assert as_tuples(resolver.resolve(mentor.id, next_monday)) == [
        ("09:00", "17:00", [30, 60, 120]),
    ]

    sessions = SessionService(db)
    booked = sessions.create_session(
        first.id, mentor.id, at_minutes(next_monday, 10 * 60), "System design", 60
    )
    assert booked.price == Decimal("40.00")
    db.expire_all()
    assert first.balance == Decimal("60.00")

    with pytest.raises(BookingConflictException):
        sessions.create_session(
            second.id, mentor.id, at_minutes(next_monday, 10 * 60 + 30), "Overlap", 30
        )
    db.expire_all()
    assert second.balance == Decimal("100.00")
    assert as_tuples(resolver.resolve(mentor.id, next_monday)) == [
        ("09:00", "10:00", [30, 60]),
        ("11:00", "17:00", [30, 60, 120]),
    ]
