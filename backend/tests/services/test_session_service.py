"""SessionService: reservation transaction, lifecycle and cancellation."""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.enums import MentorStatus, NotificationType, TransactionType
from app.core.exceptions import (
    BookingConflictException,
    ForbiddenException,
    InsufficientFundsException,
    InvalidSessionTransitionException,
    NotFoundException,
    ValidationException,
)
from app.models.notification import Notification
from app.models.session import MentorshipSession, SessionStatus
from app.models.transaction import BalanceTransaction
from app.services.session_service import SessionService, calculate_price
from app.utils.time_utils import at_minutes, utc_now, utc_today

UNKNOWN_ID = "01HZZZZZZZZZZZZZZZZZZZZZZZ"


@pytest.fixture
def service(db, emitter):
    return SessionService(db)


@pytest.fixture
def day():
    return utc_today() + timedelta(days=5)


@pytest.fixture
def booked(service, mentor, mentee, day, emitter):
    session = service.create_session(mentee.id, mentor.id, at_minutes(day, 10 * 60), "Career chat")
    emitter.emitted.clear()
    return session


def ledger(db, session_id):
    return sorted(
        (entry.user_id, entry.type, entry.amount)
        for entry in db.query(BalanceTransaction).filter_by(session_id=session_id)
    )


class TestPricing:
    @pytest.mark.parametrize(
        "rate, minutes, expected",
        [
            ("50.00", 60, "50.00"),
            ("50.00", 30, "25.00"),
            ("75.00", 120, "150.00"),
            ("33.33", 30, "16.67"),
            ("0.01", 30, "0.01"),
            ("0", 60, "0.00"),
        ],
    )
    def test_price_is_prorated_and_rounded_half_up(self, rate, minutes, expected):
        assert calculate_price(Decimal(rate), minutes) == Decimal(expected)


class TestCreateSession:
    def test_creates_pending_session_and_moves_money(self, db, service, mentor, mentee, day):
        start = at_minutes(day, 10 * 60)
        session = service.create_session(mentee.id, mentor.id, start, "  Career chat  ")

        assert session.status == SessionStatus.PENDING.value
        assert session.topic == "Career chat"
        assert session.start_time == start
        assert session.end_time == start + timedelta(minutes=60)
        assert session.price == Decimal("50.00")

        db.expire_all()
        assert mentee.balance == Decimal("150.00")
        assert mentor.balance == Decimal("50.00")
        assert ledger(db, session.id) == sorted(
            [
                (mentee.id, TransactionType.SESSION_PAYMENT.value, Decimal("-50.00")),
                (mentor.id, TransactionType.SESSION_EARNING.value, Decimal("50.00")),
            ]
        )

    def test_accepts_iso_string_with_offset(self, service, mentor, mentee, day):
        session = service.create_session(
            mentee.id, mentor.id, f"{day.isoformat()}T12:00:00+02:00", "Timezones", 30
        )
        assert session.start_time == at_minutes(day, 10 * 60)

    def test_notifies_both_parties_after_commit(self, db, service, mentor, mentee, day, emitter):
        session = service.create_session(mentee.id, mentor.id, at_minutes(day, 9 * 60), "Intro")

        assert emitter.types == [
            NotificationType.SESSION_CREATED.value,
            NotificationType.SESSION_BOOKED.value,
        ]
        assert [n.user_id for n in emitter.emitted] == [mentor.id, mentee.id]
        stored = db.query(Notification).all()
        assert len(stored) == 2
        assert all(n.data["session_id"] == session.id for n in stored)

    def test_overlapping_request_conflicts(self, db, service, mentor, mentee, day, booked):
        with pytest.raises(BookingConflictException) as exc:
            service.create_session(
                mentee.id, mentor.id, at_minutes(day, 10 * 60 + 30), "Second chat", 30
            )
        assert exc.value.details["conflicting_session_ids"] == [booked.id]
        assert db.query(MentorshipSession).count() == 1

    def test_back_to_back_sessions_do_not_conflict(self, service, mentor, mentee, day, booked):
        following = service.create_session(
            mentee.id, mentor.id, at_minutes(day, 11 * 60), "Follow-up", 30
        )
        assert following.status == SessionStatus.PENDING.value

    def test_cancelled_session_frees_the_time(self, service, mentor, mentee, day, booked):
        service.cancel_session(booked.id, mentee.id)
        again = service.create_session(
            mentee.id, mentor.id, at_minutes(day, 10 * 60), "Career chat, take two"
        )
        assert again.id != booked.id

    def test_different_mentors_can_share_a_time(self, service, make_mentor, mentee, day, booked):
        other = make_mentor(first_name="Otto")
        assert service.create_session(mentee.id, other.id, at_minutes(day, 10 * 60), "Parallel")

    def test_insufficient_funds_writes_nothing(self, db, service, mentor, make_user, day, emitter):
        broke = make_user(first_name="Bo", balance=Decimal("49.99"))

        with pytest.raises(InsufficientFundsException) as exc:
            service.create_session(broke.id, mentor.id, at_minutes(day, 10 * 60), "Career chat")

        assert exc.value.details == {"required": "50.00", "available": "49.99"}
        db.expire_all()
        assert broke.balance == Decimal("49.99")
        assert mentor.balance == Decimal("0.00")
        assert db.query(MentorshipSession).count() == 0
        assert db.query(BalanceTransaction).count() == 0
        assert db.query(Notification).count() == 0
        assert emitter.emitted == []

    def test_exact_balance_is_enough(self, db, service, mentor, make_user, day):
        exact = make_user(first_name="Ed", balance=Decimal("50.00"))
        service.create_session(exact.id, mentor.id, at_minutes(day, 10 * 60), "All in")
        db.expire_all()
        assert exact.balance == Decimal("0.00")

    def test_conflict_is_reported_before_funds(self, service, mentor, make_user, day, booked):
        broke = make_user(first_name="Bea", balance=Decimal("0.00"))
        with pytest.raises(BookingConflictException):
            service.create_session(broke.id, mentor.id, at_minutes(day, 10 * 60), "Too late")

    @pytest.mark.parametrize("status", [MentorStatus.PENDING, MentorStatus.REJECTED])
    def test_unapproved_mentor_is_not_found(self, service, make_mentor, mentee, day, status):
        unapproved = make_mentor(first_name="Una", status=status)
        with pytest.raises(NotFoundException):
            service.create_session(mentee.id, unapproved.id, at_minutes(day, 10 * 60), "Hello")

    def test_unknown_mentor(self, service, mentee, day):
        with pytest.raises(NotFoundException):
            service.create_session(mentee.id, UNKNOWN_ID, at_minutes(day, 10 * 60), "Hello")

    def test_inactive_mentee(self, service, mentor, make_user, day):
        gone = make_user(first_name="Gil", balance=Decimal("100.00"), is_active=False)
        with pytest.raises(NotFoundException):
            service.create_session(gone.id, mentor.id, at_minutes(day, 10 * 60), "Hello")

    @pytest.mark.parametrize(
        "kwargs, code",
        [
            ({"topic": ""}, "TOPIC_REQUIRED"),
            ({"topic": "   "}, "TOPIC_REQUIRED"),
            ({"topic": "x" * 201}, "TOPIC_TOO_LONG"),
            ({"duration_minutes": 45}, "INVALID_DURATION"),
            ({"start_time": "next tuesday"}, "INVALID_START_TIME"),
        ],
    )
    def test_request_validation(self, service, mentor, mentee, day, kwargs, code):
        request = {
            "start_time": at_minutes(day, 10 * 60),
            "topic": "Career chat",
            "duration_minutes": 60,
            **kwargs,
        }
        with pytest.raises(ValidationException) as exc:
            service.create_session(mentee.id, mentor.id, **request)
        assert exc.value.code == code

    def test_self_booking_is_rejected(self, service, mentor, day):
        with pytest.raises(ValidationException) as exc:
            service.create_session(mentor.id, mentor.id, at_minutes(day, 10 * 60), "Myself")
        assert exc.value.code == "SELF_BOOKING"

    def test_start_must_be_in_the_future(self, service, mentor, mentee):
        with pytest.raises(ValidationException) as exc:
            service.create_session(
                mentee.id, mentor.id, utc_now() - timedelta(minutes=5), "Yesterday"
            )
        assert exc.value.code == "START_IN_PAST"

    @pytest.mark.parametrize(
        "offset", [timedelta(seconds=30), timedelta(microseconds=1)]
    )
    def test_start_must_fall_on_a_whole_minute(self, service, db, mentor, mentee, day, offset):
        with pytest.raises(ValidationException) as exc:
            service.create_session(
                mentee.id, mentor.id, at_minutes(day, 10 * 60) + offset, "Off the minute"
            )
        assert exc.value.code == "INVALID_START_TIME"
        assert db.query(MentorshipSession).count() == 0


class TestLifecycle:
    def test_happy_path(self, service, mentor, mentee, booked, emitter):
        assert service.accept_session(booked.id, mentor.id).status == "accepted"
        assert service.confirm_session(booked.id, mentee.id).status == "confirmed"
        assert service.start_session(booked.id, mentee.id).status == "in_progress"
        completed = service.complete_session(booked.id, mentor.id)

        assert completed.status == "completed"
        assert completed.accepted_at is not None
        assert completed.completed_at is not None
        assert emitter.types == [
            NotificationType.SESSION_ACCEPTED.value,
            NotificationType.SESSION_CONFIRMED.value,
            NotificationType.SESSION_STARTED.value,
            NotificationType.SESSION_COMPLETED.value,
        ]

    def test_accepted_session_can_start_without_confirmation(self, service, mentor, booked):
        service.accept_session(booked.id, mentor.id)
        assert service.start_session(booked.id, mentor.id).status == "in_progress"

    def test_only_mentor_accepts(self, service, mentee, booked):
        with pytest.raises(ForbiddenException):
            service.accept_session(booked.id, mentee.id)

    def test_only_mentee_confirms(self, service, mentor, booked):
        service.accept_session(booked.id, mentor.id)
        with pytest.raises(ForbiddenException):
            service.confirm_session(booked.id, mentor.id)

    def test_pending_cannot_complete(self, service, mentor, booked):
        with pytest.raises(InvalidSessionTransitionException) as exc:
            service.complete_session(booked.id, mentor.id)
        assert exc.value.status_code == 400

    def test_cannot_accept_twice(self, service, mentor, booked):
        service.accept_session(booked.id, mentor.id)
        with pytest.raises(InvalidSessionTransitionException):
            service.accept_session(booked.id, mentor.id)

    def test_missing_session_beats_authorization(self, service, make_user):
        stranger = make_user(first_name="Sam")
        with pytest.raises(NotFoundException):
            service.accept_session(UNKNOWN_ID, stranger.id)

    def test_authorization_beats_transition_check(self, service, mentor, make_user, booked):
        stranger = make_user(first_name="Sid")
        service.accept_session(booked.id, mentor.id)
        with pytest.raises(ForbiddenException):
            service.accept_session(booked.id, stranger.id)


class TestCancellation:
    def test_mentee_cancel_refunds_and_claws_back(
        self, db, service, mentor, mentee, booked, emitter
    ):
        cancelled = service.cancel_session(booked.id, mentee.id, "Conflict at work")

        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_by_id == mentee.id
        assert cancelled.cancellation_reason == "Conflict at work"
        assert cancelled.cancelled_at is not None

        db.expire_all()
        assert mentee.balance == Decimal("200.00")
        assert mentor.balance == Decimal("0.00")
        refunds = [entry for entry in ledger(db, booked.id) if entry[1] == "session_refund"]
        assert sorted(refunds) == sorted(
            [
                (mentee.id, "session_refund", Decimal("50.00")),
                (mentor.id, "session_refund", Decimal("-50.00")),
            ]
        )

        assert emitter.types == [NotificationType.SESSION_CANCELLED.value]
        assert emitter.emitted[0].user_id == mentor.id
        assert "mentee" in emitter.emitted[0].message

    def test_mentor_may_cancel_accepted_session(self, service, mentor, mentee, booked, emitter):
        service.accept_session(booked.id, mentor.id)
        emitter.emitted.clear()
        service.cancel_session(booked.id, mentor.id)
        assert emitter.emitted[0].user_id == mentee.id

    def test_confirmed_session_cannot_be_cancelled(self, service, mentor, mentee, booked):
        service.accept_session(booked.id, mentor.id)
        service.confirm_session(booked.id, mentee.id)
        with pytest.raises(InvalidSessionTransitionException):
            service.cancel_session(booked.id, mentee.id)

    def test_cancel_twice_is_rejected(self, db, service, mentee, booked):
        service.cancel_session(booked.id, mentee.id)
        with pytest.raises(InvalidSessionTransitionException):
            service.cancel_session(booked.id, mentee.id)
        db.expire_all()
        assert mentee.balance == Decimal("200.00")

    def test_outsider_cannot_cancel(self, service, make_user, booked):
        with pytest.raises(ForbiddenException):
            service.cancel_session(booked.id, make_user(first_name="Oz").id)

    def test_refund_fails_whole_when_mentor_spent_earnings(
        self, db, service, mentor, mentee, booked
    ):
        mentor.balance = Decimal("10.00")
        db.commit()

        with pytest.raises(InsufficientFundsException):
            service.cancel_session(booked.id, mentee.id)

        db.expire_all()
        assert db.get(MentorshipSession, booked.id).status == "pending"
        assert mentee.balance == Decimal("150.00")
        assert mentor.balance == Decimal("10.00")

    def test_reject_refunds_the_mentee(self, db, service, mentor, mentee, booked, emitter):
        rejected = service.reject_session(booked.id, mentor.id, "Fully booked this week")

        assert rejected.status == "rejected"
        db.expire_all()
        assert mentee.balance == Decimal("200.00")
        assert emitter.types == [NotificationType.SESSION_REJECTED.value]
        assert "Fully booked this week" in emitter.emitted[0].message

    def test_only_mentor_rejects_and_only_pending(self, service, mentor, mentee, booked):
        with pytest.raises(ForbiddenException):
            service.reject_session(booked.id, mentee.id)
        service.accept_session(booked.id, mentor.id)
        with pytest.raises(InvalidSessionTransitionException):
            service.reject_session(booked.id, mentor.id)


class TestReschedule:
    def test_moves_session_keeping_price(self, db, service, mentor, mentee, day, booked, emitter):
        new_start = at_minutes(day + timedelta(days=1), 15 * 60)
        moved = service.reschedule_session(booked.id, mentee.id, new_start)

        assert (moved.start_time, moved.end_time) == (new_start, new_start + timedelta(hours=1))
        assert moved.price == Decimal("50.00")
        db.expire_all()
        assert mentee.balance == Decimal("150.00")
        assert emitter.types == [NotificationType.SESSION_RESCHEDULED.value] * 2
        previous = emitter.emitted[0].data["previous_start_time"]
        assert previous == at_minutes(day, 10 * 60).isoformat()

    def test_overlapping_its_own_old_time_is_fine(self, service, mentor, day, booked):
        moved = service.reschedule_session(booked.id, mentor.id, at_minutes(day, 10 * 60 + 30))
        assert moved.start_time == at_minutes(day, 10 * 60 + 30)

    def test_conflict_with_another_session(self, service, mentor, mentee, day, booked):
        service.create_session(mentee.id, mentor.id, at_minutes(day, 14 * 60), "Other", 30)
        with pytest.raises(BookingConflictException):
            service.reschedule_session(booked.id, mentee.id, at_minutes(day, 13 * 60 + 30))
        assert service.get_session(booked.id, mentee.id).start_time == at_minutes(day, 10 * 60)

    def test_confirmed_session_cannot_move(self, service, mentor, mentee, day, booked):
        service.accept_session(booked.id, mentor.id)
        service.confirm_session(booked.id, mentee.id)
        with pytest.raises(InvalidSessionTransitionException):
            service.reschedule_session(booked.id, mentee.id, at_minutes(day, 16 * 60))

    def test_past_start(self, service, mentee, booked):
        with pytest.raises(ValidationException) as exc:
            service.reschedule_session(booked.id, mentee.id, utc_now() - timedelta(hours=1))
        assert exc.value.code == "START_IN_PAST"

    def test_start_off_the_minute(self, service, mentee, day, booked):
        with pytest.raises(ValidationException) as exc:
            service.reschedule_session(
                booked.id, mentee.id, at_minutes(day, 16 * 60) + timedelta(seconds=30)
            )
        assert exc.value.code == "INVALID_START_TIME"

    def test_unknown_session(self, service, mentee, day):
        with pytest.raises(NotFoundException):
            service.reschedule_session(UNKNOWN_ID, mentee.id, at_minutes(day, 16 * 60))


class TestReads:
    def test_list_sessions_for_both_parties(self, service, mentor, mentee, day, booked):
        later = service.create_session(
            mentee.id, mentor.id, at_minutes(day + timedelta(days=1), 9 * 60), "Later", 30
        )
        assert [s.id for s in service.list_sessions(mentee.id)] == [later.id, booked.id]
        assert [s.id for s in service.list_sessions(mentor.id)] == [later.id, booked.id]

    def test_get_session_requires_a_party(self, service, make_user, booked):
        with pytest.raises(ForbiddenException):
            service.get_session(booked.id, make_user(first_name="Ned").id)
