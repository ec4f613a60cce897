"""Celery tasks that keep materialized availability slots current."""

from __future__ import annotations

from datetime import date
import logging
from typing import Any, Dict, Optional

from app.core.exceptions import DomainException
from app.database import get_db_session
from app.repositories import RepositoryFactory
from app.services.availability_service import AvailabilityService
from app.tasks.celery_app import celery_app
from app.utils.time_utils import parse_iso_date, utc_today

logger = logging.getLogger(__name__)


def refresh_all_horizons(start_date: Optional[date] = None) -> Dict[str, Any]:
    """
    Re-materialize the slot horizon of every approved mentor.

    Each mentor is refreshed in its own transaction; one failing mentor is
    logged and counted without stopping the others. Materialized slots
    dated before today are purged afterwards.
    """
    start = start_date or utc_today()
    refreshed = 0
    slots = 0
    failed: list[str] = []

    with get_db_session() as db:
        mentor_ids = RepositoryFactory.create_mentor_profile_repository(db).list_approved_user_ids()
        service = AvailabilityService(db)
        for mentor_id in mentor_ids:
            try:
                slots += service.refresh_horizon(mentor_id, start)
                refreshed += 1
            except DomainException as exc:
                logger.error(
                    f"Horizon refresh failed for mentor {mentor_id}: {exc.message}",
                    extra={"mentor_id": mentor_id, "code": exc.code},
                )
                failed.append(mentor_id)

        purged = service.purge_past_weekly_slots(utc_today())

    logger.info(
        "Availability horizons refreshed",
        extra={"mentors": refreshed, "slots": slots, "failed": len(failed), "purged": purged},
    )
    return {
        "start_date": start.isoformat(),
        "mentors_refreshed": refreshed,
        "slots_written": slots,
        "failed_mentor_ids": failed,
        "slots_purged": purged,
    }


@celery_app.task(name="availability.refresh_horizons")  # type: ignore[misc]
def refresh_horizons(start_date: Optional[str] = None) -> Dict[str, Any]:
    """Beat entry point; ``start_date`` is an optional ISO date string."""
    return refresh_all_horizons(parse_iso_date(start_date) if start_date else None)
