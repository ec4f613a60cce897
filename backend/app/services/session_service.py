# backend/app/services/session_service.py
"""
Session Service for the mentorship platform.

Handles the session lifecycle:
- Reservation: conflict check, balance check, debit and creation as one unit
- Mentor decisions (accept, reject) and mentee confirmation
- Cancellation with a full balance reversal
- Rescheduling with a fresh conflict check
- Start/complete transitions and read access for the two parties

Calendar-mutating operations run under the per-mentor booking lock, then in
one database transaction. Notifications are stored in that transaction and
delivered only after it commits.
"""

from datetime import datetime, timedelta
from decimal import Decimal
import logging
from typing import Callable, List, Optional, Union

from sqlalchemy.orm import Session

from ..core.booking_lock import mentor_booking_lock
from ..core.config import settings
from ..core.constants import (
    DEFAULT_SESSION_DURATION,
    MAX_TOPIC_LENGTH,
    SESSION_DURATION_OPTIONS as DURATION_OPTIONS,
)
from ..core.enums import NotificationType, TransactionType
from ..core.exceptions import (
    BookingConflictException,
    ForbiddenException,
    InvalidSessionTransitionException,
    NotFoundException,
    ValidationException,
)
from ..database.session_utils import apply_statement_timeout
from ..models.session import (
    RESCHEDULABLE_STATUSES,
    MentorshipSession,
    SessionStatus,
)
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.session_repository import SessionRepository
from ..utils.time_utils import parse_iso_datetime, to_utc_naive, utc_now
from .balance_service import BalanceService, to_money
from .base import BaseService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = DEFAULT_SESSION_DURATION
SLOT_TAKEN_MESSAGE = "This time slot is already booked"

MENTOR_ONLY = "mentor"
MENTEE_ONLY = "mentee"
EITHER_PARTY = "party"


def calculate_price(hourly_rate: Union[Decimal, int, str], duration_minutes: int) -> Decimal:
    """Hourly rate pro-rated to the duration, rounded half-up to cents."""
    return to_money(Decimal(str(hourly_rate)) * duration_minutes / 60)


class SessionService(BaseService):
    """
    Service layer for mentorship sessions.

    The reservation order is fixed: mentor lookup, conflict check, mentee
    balance check, then writes. Nothing is written until every check passes.
    """

    def __init__(
        self,
        db: Session,
        balance_service: Optional[BalanceService] = None,
        notification_service: Optional[NotificationService] = None,
        repository: Optional[SessionRepository] = None,
    ):
        """
        Initialize session service.

        Args:
            db: Database session
            balance_service: Optional balance collaborator
            notification_service: Optional notification collaborator
            repository: Optional SessionRepository instance
        """
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_session_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.mentor_repository = RepositoryFactory.create_mentor_profile_repository(db)
        self.balance_service = balance_service or BalanceService(db)
        self.notification_service = notification_service or NotificationService(db)

    def _on_rollback(self) -> None:
        self.notification_service.discard_pending()

    # Reservation

    @staticmethod
    def _coerce_start(start_time: Union[datetime, str]) -> datetime:
        if isinstance(start_time, datetime):
            return to_utc_naive(start_time)
        try:
            return parse_iso_datetime(start_time)
        except (TypeError, ValueError):
            raise ValidationException(
                "Invalid start time. Use an ISO-8601 timestamp",
                code="INVALID_START_TIME",
                details={"start_time": start_time},
            )

    @staticmethod
    def _require_whole_minute(start: datetime) -> None:
        # Calendar arithmetic works in whole minutes.
        if start.second or start.microsecond:
            raise ValidationException(
                "Start time must fall on a whole minute",
                code="INVALID_START_TIME",
                details={"start_time": start.isoformat()},
            )

    def _validate_request(
        self, mentee_id: str, mentor_id: str, start: datetime, topic: str, duration_minutes: int
    ) -> None:
        if not topic or not topic.strip():
            raise ValidationException("Topic is required", code="TOPIC_REQUIRED")
        if len(topic.strip()) > MAX_TOPIC_LENGTH:
            raise ValidationException(
                f"Topic must be at most {MAX_TOPIC_LENGTH} characters", code="TOPIC_TOO_LONG"
            )
        if duration_minutes not in DURATION_OPTIONS:
            raise ValidationException(
                f"Duration must be one of {', '.join(str(d) for d in DURATION_OPTIONS)} minutes",
                code="INVALID_DURATION",
                details={"duration": duration_minutes, "allowed": list(DURATION_OPTIONS)},
            )
        if mentee_id == mentor_id:
            raise ValidationException(
                "Mentors cannot book sessions with themselves", code="SELF_BOOKING"
            )
        if start <= utc_now():
            raise ValidationException("Session must start in the future", code="START_IN_PAST")
        self._require_whole_minute(start)

    @BaseService.measure_operation("create_session")
    def create_session(
        self,
        mentee_id: str,
        mentor_id: str,
        start_time: Union[datetime, str],
        topic: str,
        duration_minutes: int = DEFAULT_DURATION_MINUTES,
    ) -> MentorshipSession:
        """
        Reserve a session and charge the mentee.

        Args:
            mentee_id: The booking user
            mentor_id: The mentor being booked
            start_time: Session start, ISO-8601 string or datetime
            topic: What the session is about
            duration_minutes: One of DURATION_OPTIONS

        Returns:
            The pending session

        Raises:
            ValidationException: bad topic, duration, start time or self-booking
            NotFoundException: mentor (or approved profile) or mentee missing
            BookingConflictException: the mentor already has a session then
            InsufficientFundsException: mentee balance below the price
            PersistenceException: the write failed; nothing was applied
        """
        start = self._coerce_start(start_time)
        self._validate_request(mentee_id, mentor_id, start, topic, duration_minutes)
        end = start + timedelta(minutes=duration_minutes)

        try:
            with mentor_booking_lock(mentor_id):
                with self.transaction(on_integrity_error=BookingConflictException):
                    apply_statement_timeout(self.db, settings.transaction_timeout_ms)
                    session = self._reserve(
                        mentee_id, mentor_id, start, end, topic, duration_minutes
                    )
        except Exception as exc:
            prometheus_metrics.record_reservation(getattr(exc, "code", type(exc).__name__))
            raise

        prometheus_metrics.record_reservation("created")
        self.notification_service.dispatch_pending()
        self.log_operation(
            "create_session",
            session_id=session.id,
            mentor_id=mentor_id,
            mentee_id=mentee_id,
            price=str(session.price),
        )
        return session

    def _reserve(
        self,
        mentee_id: str,
        mentor_id: str,
        start: datetime,
        end: datetime,
        topic: str,
        duration_minutes: int,
    ) -> MentorshipSession:
        mentor = self.user_repository.get_active(mentor_id)
        profile = self.mentor_repository.get_by_user_id(mentor_id, for_update=True)
        if mentor is None or profile is None or not profile.is_approved:
            raise NotFoundException("Mentor not found", details={"mentor_id": mentor_id})

        conflicts = self.repository.find_overlapping(mentor_id, start, end)
        if conflicts:
            raise BookingConflictException(
                SLOT_TAKEN_MESSAGE,
                details={"conflicting_session_ids": [s.id for s in conflicts]},
            )

        mentee = self.user_repository.get_for_balance_update(mentee_id)
        if mentee is None or not mentee.is_active:
            raise NotFoundException("Mentee not found", details={"mentee_id": mentee_id})

        price = calculate_price(profile.hourly_rate, duration_minutes)
        self.balance_service.ensure_sufficient(mentee, price)

        session = self.repository.create(
            mentor_id=mentor_id,
            mentee_id=mentee_id,
            topic=topic.strip(),
            start_time=start,
            end_time=end,
            duration_minutes=duration_minutes,
            price=price,
            status=SessionStatus.PENDING.value,
        )

        if price > 0:
            self.balance_service.debit(
                mentee_id,
                price,
                TransactionType.SESSION_PAYMENT,
                session_id=session.id,
                related_user_id=mentor_id,
                description=f"Payment for session: {session.topic}",
            )
            self.balance_service.credit(
                mentor_id,
                price,
                TransactionType.SESSION_EARNING,
                session_id=session.id,
                related_user_id=mentee_id,
                description=f"Earning for session: {session.topic}",
            )

        data = session.to_notification_data()
        self.notification_service.notify(
            mentor_id,
            NotificationType.SESSION_CREATED,
            "New Session Request",
            f"{mentee.full_name} requested a {duration_minutes}-minute session on "
            f"{start:%Y-%m-%d %H:%M} UTC: {session.topic}",
            data,
        )
        self.notification_service.notify(
            mentee_id,
            NotificationType.SESSION_BOOKED,
            "Session Booked",
            f"Your session with {mentor.full_name} on {start:%Y-%m-%d %H:%M} UTC is awaiting "
            f"confirmation. ${price:.2f} has been deducted from your balance.",
            data,
        )
        return session

    # Lifecycle transitions

    def _load_for_change(
        self,
        session_id: str,
        caller_id: str,
        allowed: str,
        target: Optional[SessionStatus] = None,
    ) -> MentorshipSession:
        """Load with a row lock, then check caller and transition, in that order."""
        session = self.repository.get_by_id(session_id, for_update=True)
        if session is None:
            raise NotFoundException("Session not found", details={"session_id": session_id})

        if allowed == MENTOR_ONLY:
            permitted = caller_id == session.mentor_id
        elif allowed == MENTEE_ONLY:
            permitted = caller_id == session.mentee_id
        else:
            permitted = session.is_party(caller_id)
        if not permitted:
            raise ForbiddenException(
                "Not authorized to modify this session", details={"session_id": session_id}
            )

        if target is not None and not session.can_transition_to(target):
            raise InvalidSessionTransitionException(session.id, session.status, target.value)
        return session

    def _transition(
        self,
        session_id: str,
        caller_id: str,
        allowed: str,
        target: SessionStatus,
        apply: Callable[[MentorshipSession], None],
    ) -> MentorshipSession:
        with self.transaction():
            session = self._load_for_change(session_id, caller_id, allowed, target)
            session.status = target.value
            apply(session)
            self.repository.flush()
        self.notification_service.dispatch_pending()
        self.log_operation(
            f"session_{target.value}",
            session_id=session_id,
            caller_id=caller_id,
        )
        return session

    @BaseService.measure_operation("accept_session")
    def accept_session(self, session_id: str, caller_id: str) -> MentorshipSession:
        """Mentor accepts a pending request."""

        def apply(session: MentorshipSession) -> None:
            session.accepted_at = utc_now()
            self.notification_service.notify(
                session.mentee_id,
                NotificationType.SESSION_ACCEPTED,
                "Session Accepted",
                f"Your session on {session.start_time:%Y-%m-%d %H:%M} UTC was accepted",
                session.to_notification_data(),
            )

        return self._transition(session_id, caller_id, MENTOR_ONLY, SessionStatus.ACCEPTED, apply)

    @BaseService.measure_operation("confirm_session")
    def confirm_session(self, session_id: str, caller_id: str) -> MentorshipSession:
        """Mentee confirms an accepted session."""

        def apply(session: MentorshipSession) -> None:
            self.notification_service.notify(
                session.mentor_id,
                NotificationType.SESSION_CONFIRMED,
                "Session Confirmed",
                f"The session on {session.start_time:%Y-%m-%d %H:%M} UTC was confirmed",
                session.to_notification_data(),
            )

        return self._transition(session_id, caller_id, MENTEE_ONLY, SessionStatus.CONFIRMED, apply)

    @BaseService.measure_operation("start_session")
    def start_session(self, session_id: str, caller_id: str) -> MentorshipSession:
        def apply(session: MentorshipSession) -> None:
            self.notification_service.notify(
                session.other_party(caller_id),
                NotificationType.SESSION_STARTED,
                "Session Started",
                f"Your session \"{session.topic}\" has started",
                session.to_notification_data(),
            )

        return self._transition(
            session_id, caller_id, EITHER_PARTY, SessionStatus.IN_PROGRESS, apply
        )

    @BaseService.measure_operation("complete_session")
    def complete_session(self, session_id: str, caller_id: str) -> MentorshipSession:
        """Mentor marks the session as held."""

        def apply(session: MentorshipSession) -> None:
            session.completed_at = utc_now()
            self.notification_service.notify(
                session.mentee_id,
                NotificationType.SESSION_COMPLETED,
                "Session Completed",
                f"Your session \"{session.topic}\" is complete",
                session.to_notification_data(),
            )

        return self._transition(session_id, caller_id, MENTOR_ONLY, SessionStatus.COMPLETED, apply)

    def _reverse_payment(self, session: MentorshipSession) -> None:
        """Refund the mentee and take the same amount back from the mentor."""
        price = to_money(session.price)
        if price <= 0:
            return
        self.balance_service.credit(
            session.mentee_id,
            price,
            TransactionType.SESSION_REFUND,
            session_id=session.id,
            related_user_id=session.mentor_id,
            description=f"Refund for session: {session.topic}",
        )
        self.balance_service.debit(
            session.mentor_id,
            price,
            TransactionType.SESSION_REFUND,
            session_id=session.id,
            related_user_id=session.mentee_id,
            description=f"Refund for session: {session.topic}",
        )

    @BaseService.measure_operation("cancel_session")
    def cancel_session(
        self, session_id: str, caller_id: str, reason: Optional[str] = None
    ) -> MentorshipSession:
        """
        Cancel a pending or accepted session and reverse the payment.

        Raises:
            NotFoundException: unknown session
            ForbiddenException: caller is neither mentor nor mentee
            InvalidSessionTransitionException: session is past the cancellable states
            InsufficientFundsException: the mentor can no longer cover the refund
        """

        def apply(session: MentorshipSession) -> None:
            session.cancel(caller_id, reason, utc_now())
            self._reverse_payment(session)
            canceller = "mentor" if caller_id == session.mentor_id else "mentee"
            self.notification_service.notify(
                session.other_party(caller_id),
                NotificationType.SESSION_CANCELLED,
                "Session Cancelled",
                f"The session on {session.start_time:%Y-%m-%d %H:%M} UTC was cancelled by "
                f"the {canceller}" + (f": {reason}" if reason else ""),
                {**session.to_notification_data(), "cancelled_by": caller_id},
            )

        return self._transition(
            session_id, caller_id, EITHER_PARTY, SessionStatus.CANCELLED, apply
        )

    @BaseService.measure_operation("reject_session")
    def reject_session(
        self, session_id: str, caller_id: str, reason: Optional[str] = None
    ) -> MentorshipSession:
        """Mentor declines a pending request; the mentee is refunded in full."""

        def apply(session: MentorshipSession) -> None:
            session.cancel(caller_id, reason, utc_now(), status=SessionStatus.REJECTED)
            self._reverse_payment(session)
            self.notification_service.notify(
                session.mentee_id,
                NotificationType.SESSION_REJECTED,
                "Session Request Declined",
                f"Your session request for {session.start_time:%Y-%m-%d %H:%M} UTC was declined"
                + (f": {reason}" if reason else ""),
                session.to_notification_data(),
            )

        return self._transition(session_id, caller_id, MENTOR_ONLY, SessionStatus.REJECTED, apply)

    @BaseService.measure_operation("reschedule_session")
    def reschedule_session(
        self, session_id: str, caller_id: str, new_start_time: Union[datetime, str]
    ) -> MentorshipSession:
        """
        Move a pending or accepted session, keeping duration and price.

        The new time is checked against the mentor's other sessions under
        the mentor lock; the balance is not touched.
        """
        new_start = self._coerce_start(new_start_time)
        if new_start <= utc_now():
            raise ValidationException("Session must start in the future", code="START_IN_PAST")
        self._require_whole_minute(new_start)

        existing = self.repository.get_by_id(session_id)
        if existing is None:
            raise NotFoundException("Session not found", details={"session_id": session_id})

        with mentor_booking_lock(existing.mentor_id):
            with self.transaction(on_integrity_error=BookingConflictException):
                apply_statement_timeout(self.db, settings.transaction_timeout_ms)
                session = self._load_for_change(session_id, caller_id, EITHER_PARTY)
                if session.status_enum not in RESCHEDULABLE_STATUSES:
                    raise InvalidSessionTransitionException(
                        session.id, session.status, "rescheduled"
                    )

                new_end = new_start + timedelta(minutes=session.duration_minutes)
                conflicts = self.repository.find_overlapping(
                    session.mentor_id, new_start, new_end, exclude_session_id=session.id
                )
                if conflicts:
                    raise BookingConflictException(
                        SLOT_TAKEN_MESSAGE,
                        details={"conflicting_session_ids": [s.id for s in conflicts]},
                    )

                previous_start = session.start_time
                session.move_to(new_start)
                self.repository.flush()

                data = {
                    **session.to_notification_data(),
                    "previous_start_time": previous_start.isoformat(),
                }
                message = (
                    f"Session \"{session.topic}\" moved from {previous_start:%Y-%m-%d %H:%M} "
                    f"to {new_start:%Y-%m-%d %H:%M} UTC"
                )
                for user_id in (session.mentor_id, session.mentee_id):
                    self.notification_service.notify(
                        user_id,
                        NotificationType.SESSION_RESCHEDULED,
                        "Session Rescheduled",
                        message,
                        data,
                    )

        self.notification_service.dispatch_pending()
        self.log_operation(
            "reschedule_session",
            session_id=session_id,
            caller_id=caller_id,
            new_start=new_start.isoformat(),
        )
        return session

    # Reads

    @BaseService.measure_operation("list_sessions")
    def list_sessions(self, user_id: str) -> List[MentorshipSession]:
        """Sessions where the user is mentor or mentee, newest first."""
        return self.repository.list_for_user(user_id)

    @BaseService.measure_operation("get_session")
    def get_session(self, session_id: str, caller_id: str) -> MentorshipSession:
        session = self.repository.get_by_id(session_id)
        if session is None:
            raise NotFoundException("Session not found", details={"session_id": session_id})
        if not session.is_party(caller_id):
            raise ForbiddenException(
                "Not authorized to view this session", details={"session_id": session_id}
            )
        return session
