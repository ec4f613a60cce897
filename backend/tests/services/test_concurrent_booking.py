"""Concurrent reservations against one mentor."""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from decimal import Decimal
import threading

from app.core.exceptions import BookingConflictException
from app.database import SessionLocal
from app.models.session import MentorshipSession
from app.services.session_service import SessionService
from app.utils.time_utils import at_minutes, utc_today

WORKERS = 6


def _book(mentee_id, mentor_id, start, barrier):
    db = SessionLocal()
    try:
        barrier.wait(timeout=5)
        try:
            session = SessionService(db).create_session(mentee_id, mentor_id, start, "Race", 60)
            return ("created", session.id)
        except BookingConflictException as exc:
            return (exc.code, None)
    finally:
        db.close()


def test_only_one_of_many_simultaneous_requests_wins(db, mentor, make_user):
    mentees = [make_user(first_name=f"Racer{i}", balance=Decimal("100.00")) for i in range(WORKERS)]
    start = at_minutes(utc_today() + timedelta(days=2), 9 * 60)
    barrier = threading.Barrier(WORKERS)

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        futures = [pool.submit(_book, m.id, mentor.id, start, barrier) for m in mentees]
        outcomes = [future.result(timeout=30) for future in futures]

    assert sorted(code for code, _ in outcomes) == ["BOOKING_CONFLICT"] * (WORKERS - 1) + [
        "created"
    ]

    db.expire_all()
    assert db.query(MentorshipSession).filter_by(mentor_id=mentor.id).count() == 1
    charged = [m for m in mentees if m.balance != Decimal("100.00")]
    assert len(charged) == 1
    assert charged[0].balance == Decimal("50.00")
    assert mentor.balance == Decimal("50.00")


def test_overlapping_but_unequal_requests(db, mentor, make_user):
    first, second = (make_user(first_name=n, balance=Decimal("100.00")) for n in ("Ada", "Ben"))
    day = utc_today() + timedelta(days=3)
    barrier = threading.Barrier(2)

    with ThreadPoolExecutor(max_workers=2) as pool:
        a = pool.submit(_book, first.id, mentor.id, at_minutes(day, 9 * 60), barrier)
        b = pool.submit(_book, second.id, mentor.id, at_minutes(day, 9 * 60 + 30), barrier)
        outcomes = sorted([a.result(timeout=30)[0], b.result(timeout=30)[0]])

    assert outcomes == ["BOOKING_CONFLICT", "created"]
