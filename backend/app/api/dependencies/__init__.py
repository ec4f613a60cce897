# backend/app/api/dependencies/__init__.py
"""
Central export point for all dependencies.
"""

from .auth import get_current_active_user
from .database import get_db
from .services import (
    get_availability_resolver,
    get_availability_service,
    get_notification_service,
    get_session_service,
)

__all__ = [
    # Auth
    "get_current_active_user",
    # Database
    "get_db",
    # Services
    "get_availability_resolver",
    "get_availability_service",
    "get_notification_service",
    "get_session_service",
]
