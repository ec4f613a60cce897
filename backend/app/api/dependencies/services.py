# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Each request gets fresh service instances bound to its database session.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.availability_resolver import AvailabilityResolver
from ...services.availability_service import AvailabilityService
from ...services.notification_service import NotificationService
from ...services.session_service import SessionService
from .database import get_db


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_availability_resolver(db: Session = Depends(get_db)) -> AvailabilityResolver:
    return AvailabilityResolver(db)


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


def get_session_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> SessionService:
    """
    Get session service instance with its collaborators.

    Args:
        db: Database session
        notification_service: Notification service sharing the same session

    Returns:
        SessionService instance
    """
    return SessionService(db, notification_service=notification_service)
