# backend/app/tasks/__init__.py
"""
Celery tasks package for the mentorship platform.

This package contains the scheduled maintenance tasks:
- Rolling refresh of materialized availability slots
- Worker health check
"""

from app.tasks.availability_tasks import refresh_all_horizons, refresh_horizons
from app.tasks.celery_app import BaseTask, celery_app

__all__ = [
    "celery_app",
    "BaseTask",
    "refresh_all_horizons",
    "refresh_horizons",
]

# This allows running celery with: celery -A app.tasks worker
