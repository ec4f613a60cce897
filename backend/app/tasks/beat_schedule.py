# backend/app/tasks/beat_schedule.py
"""
Celery Beat schedule configuration for the mentorship platform.

Periodic tasks are scheduled with crontab expressions; environments can
override individual entries through ``SCHEDULE_CONFIG``.
"""

from typing import Any

from celery.schedules import crontab

# Main beat schedule configuration
CELERYBEAT_SCHEDULE: dict[str, dict[str, Any]] = {
    # Keep every approved mentor's slot horizon a full window ahead
    "refresh-availability-horizons": {
        "task": "availability.refresh_horizons",
        "schedule": crontab(hour=0, minute=15),  # Daily at 00:15 UTC
        "options": {
            "queue": "availability",
            "priority": 5,
        },
    },
}

SCHEDULE_CONFIG: dict[str, dict[str, dict[str, Any]]] = {
    "development": {
        "refresh-availability-horizons": {
            "task": "availability.refresh_horizons",
            "schedule": crontab(minute=0),  # Hourly, so local data stays fresh
            "options": {"queue": "availability"},
        },
    },
}


def get_beat_schedule(environment: str = "production") -> dict[str, dict[str, Any]]:
    """
    Get the beat schedule for the specified environment.

    Args:
        environment: The environment name (production, development, test)

    Returns:
        Mapping of task name to Celery beat configuration dict
    """
    base: dict[str, dict[str, Any]] = dict(CELERYBEAT_SCHEDULE)
    overrides = SCHEDULE_CONFIG.get(environment)
    if overrides:
        base.update(overrides)
    return base
