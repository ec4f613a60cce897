"""Shared helpers for the mentorship test-suite."""

from datetime import date, timedelta
from typing import Dict, List

from app.auth import create_access_token
from app.core.enums import Weekday
from app.models.notification import Notification
from app.models.user import User
from app.utils.time_utils import utc_today


class RecordingEmitter:
    """Notification emitter that keeps what it was handed."""

    def __init__(self) -> None:
        self.emitted: List[Notification] = []

    def emit(self, notification: Notification) -> None:
        self.emitted.append(notification)

    @property
    def types(self) -> List[str]:
        return [notification.type for notification in self.emitted]


class FailingEmitter:
    def emit(self, notification: Notification) -> None:
        raise ConnectionError("push gateway down")


def next_weekday(day: Weekday, weeks_ahead: int = 1) -> date:
    """A date on ``day`` strictly after today, ``weeks_ahead`` weeks out."""
    today = utc_today()
    offset = (day.index - today.weekday()) % 7 or 7
    return today + timedelta(days=offset + 7 * (weeks_ahead - 1))


def auth_headers_for(user: User) -> Dict[str, str]:
    token = create_access_token(data={"sub": user.id})
    return {"Authorization": f"Bearer {token}"}
