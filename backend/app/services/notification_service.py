# backend/app/services/notification_service.py
"""
Notification Service for the mentorship platform.

Two phases:

1. ``notify`` stores the in-app row in the caller's open transaction and
   stages it for delivery. The row commits or rolls back with the session
   change that produced it.
2. ``dispatch_pending`` runs after commit and hands each staged notification
   to the configured emitter. Delivery is best-effort: failures are logged
   and never undo the committed write.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.orm import Session

from ..core.enums import NotificationType
from ..models.notification import Notification
from ..repositories import RepositoryFactory
from ..repositories.notification_repository import NotificationRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class NotificationEmitter(Protocol):
    """External delivery channel (push, socket fan-out, email)."""

    def emit(self, notification: Notification) -> None: ...


class LoggingNotificationEmitter:
    """Default emitter: structured log line per notification."""

    def emit(self, notification: Notification) -> None:
        logger.info(
            "notification_emitted",
            extra={
                "notification_id": notification.id,
                "user_id": notification.user_id,
                "notification_type": notification.type,
            },
        )


_default_emitter: NotificationEmitter = LoggingNotificationEmitter()


def set_default_emitter(emitter: NotificationEmitter) -> None:
    """Install the process-wide emitter used when none is injected."""
    global _default_emitter
    _default_emitter = emitter


class NotificationService(BaseService):
    """Stores in-app notifications and fans them out after commit."""

    def __init__(
        self,
        db: Session,
        emitter: Optional[NotificationEmitter] = None,
        repository: Optional[NotificationRepository] = None,
    ):
        super().__init__(db)
        self.emitter = emitter or _default_emitter
        self.repository = repository or RepositoryFactory.create_notification_repository(db)
        self._pending: List[Notification] = []

    def notify(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        """Store a notification row in the current transaction and stage it."""
        notification = self.repository.create(
            user_id=user_id,
            type=notification_type.value,
            title=title,
            message=message,
            data=data or {},
        )
        self._pending.append(notification)
        return notification

    def dispatch_pending(self) -> int:
        """
        Deliver staged notifications. Call only after the transaction commits.

        Returns:
            Number of notifications the emitter accepted
        """
        pending, self._pending = self._pending, []
        delivered = 0
        for notification in pending:
            try:
                self.emitter.emit(notification)
                delivered += 1
            except Exception as exc:
                self.logger.warning(
                    "Notification delivery failed",
                    extra={
                        "notification_id": notification.id,
                        "user_id": notification.user_id,
                        "notification_type": notification.type,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
        return delivered

    def discard_pending(self) -> None:
        """Drop staged notifications after a rollback."""
        self._pending = []
