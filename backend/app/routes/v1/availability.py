# backend/app/routes/v1/availability.py
"""
Mentor availability routes - API v1

Versioned endpoints under /api/v1/mentors/{mentor_id}.
All business logic delegated to AvailabilityService and AvailabilityResolver.

Endpoints:
    GET /availability?date=YYYY-MM-DD - Bookable windows on one date (public)
    GET /availability/weekly - Seven-day schedule (public)
    PUT /availability/weekly - Replace one weekday (mentor only)
    POST /availability/setup - Reset the schedule to all unavailable (mentor only)
    GET /slots - Dated slots for the coming days (public)
    POST /slots - Add a one-off slot, optionally repeated weekly (mentor only)
    DELETE /slots/{slot_id} - Remove a slot without booked sessions (mentor only)
"""

import asyncio
from datetime import date
import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Response, status

from ...api.dependencies import (
    get_availability_resolver,
    get_availability_service,
    get_current_active_user,
)
from ...core.exceptions import DomainException
from ...domain.availability import WeeklySchedule
from ...models.user import User
from ...schemas.availability import (
    AvailabilitySlotCreate,
    AvailabilitySlotResponse,
    DayAvailabilityUpdate,
    MentorAvailabilityResponse,
    WeeklyAvailabilityResponse,
)
from ...services.availability_resolver import AvailabilityResolver
from ...services.availability_service import AvailabilityService
from ...utils.time_utils import parse_iso_date, utc_today

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["availability-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _weekly_response(mentor_id: str, schedule: WeeklySchedule) -> WeeklyAvailabilityResponse:
    return WeeklyAvailabilityResponse(mentor_id=mentor_id, availability=schedule.to_json())


@router.get(
    "/{mentor_id}/availability",
    response_model=MentorAvailabilityResponse,
    responses={404: {"description": "Mentor not found"}},
)
async def get_mentor_availability(
    mentor_id: str = Path(
        ...,
        description="Mentor user ULID",
        pattern=ULID_PATH_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    ),
    target_date: str = Query(..., alias="date", description="Date as YYYY-MM-DD"),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
) -> MentorAvailabilityResponse:
    """
    Bookable windows for one date with the durations that fit each.

    A missing ``date`` is a request validation error (422); a malformed one
    is rejected with 400 and code INVALID_DATE.
    """
    try:
        windows = await asyncio.to_thread(resolver.resolve, mentor_id, target_date)
        return MentorAvailabilityResponse(
            mentor_id=mentor_id,
            date=parse_iso_date(target_date),
            windows=[window.to_dict() for window in windows],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get(
    "/{mentor_id}/availability/weekly",
    response_model=WeeklyAvailabilityResponse,
    responses={404: {"description": "Mentor not found"}},
)
async def get_weekly_availability(
    mentor_id: str = Path(
        ...,
        description="Mentor user ULID",
        pattern=ULID_PATH_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    ),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> WeeklyAvailabilityResponse:
    try:
        schedule = await asyncio.to_thread(
            availability_service.get_weekly_availability, mentor_id
        )
        return _weekly_response(mentor_id, schedule)
    except DomainException as e:
        handle_domain_exception(e)


@router.put(
    "/{mentor_id}/availability/weekly",
    response_model=WeeklyAvailabilityResponse,
    responses={
        403: {"description": "Not the mentor"},
        409: {"description": "Overlaps a booked session"},
    },
)
async def update_day_availability(
    mentor_id: str = Path(
        ...,
        description="Mentor user ULID",
        pattern=ULID_PATH_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    ),
    payload: DayAvailabilityUpdate = Body(...),
    current_user: User = Depends(get_current_active_user),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> WeeklyAvailabilityResponse:
    """
    Replace the windows of one weekday.

    The rolling slot horizon is regenerated in the same transaction.
    """
    try:
        schedule = await asyncio.to_thread(
            availability_service.update_day_availability,
            mentor_id,
            current_user.id,
            payload.day,
            payload.available,
            [slot.model_dump() for slot in payload.slots],
        )
        return _weekly_response(mentor_id, schedule)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{mentor_id}/availability/setup",
    response_model=WeeklyAvailabilityResponse,
    responses={403: {"description": "Not the mentor"}},
)
async def initialize_weekly_availability(
    mentor_id: str = Path(
        ...,
        description="Mentor user ULID",
        pattern=ULID_PATH_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    ),
    current_user: User = Depends(get_current_active_user),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> WeeklyAvailabilityResponse:
    try:
        schedule = await asyncio.to_thread(
            availability_service.initialize_weekly_availability, mentor_id, current_user.id
        )
        return _weekly_response(mentor_id, schedule)
    except DomainException as e:
        handle_domain_exception(e)


@router.get(
    "/{mentor_id}/slots",
    response_model=List[AvailabilitySlotResponse],
    responses={404: {"description": "Mentor not found"}},
)
async def list_availability_slots(
    mentor_id: str = Path(
        ...,
        description="Mentor user ULID",
        pattern=ULID_PATH_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    ),
    start_date: Optional[date] = Query(None, description="First date, defaults to today"),
    days: int = Query(7, ge=1, le=90),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> List[AvailabilitySlotResponse]:
    try:
        slots = await asyncio.to_thread(
            availability_service.list_slots, mentor_id, start_date or utc_today(), days
        )
        return [AvailabilitySlotResponse.model_validate(slot) for slot in slots]
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{mentor_id}/slots",
    response_model=List[AvailabilitySlotResponse],
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"description": "Not the mentor"},
        409: {"description": "Overlaps an existing slot or session"},
    },
)
async def add_availability_slot(
    mentor_id: str = Path(
        ...,
        description="Mentor user ULID",
        pattern=ULID_PATH_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    ),
    payload: AvailabilitySlotCreate = Body(...),
    current_user: User = Depends(get_current_active_user),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> List[AvailabilitySlotResponse]:
    """Add a dated slot; ``recurring`` repeats it for ``number_of_weeks`` weeks."""
    try:
        slots = await asyncio.to_thread(
            availability_service.add_availability_slot,
            mentor_id,
            current_user.id,
            payload.date,
            payload.start_time,
            payload.end_time,
            payload.recurring,
            payload.number_of_weeks,
        )
        return [AvailabilitySlotResponse.model_validate(slot) for slot in slots]
    except DomainException as e:
        handle_domain_exception(e)


@router.delete(
    "/{mentor_id}/slots/{slot_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"description": "Not the mentor"},
        404: {"description": "Slot not found"},
        409: {"description": "Slot has booked sessions"},
    },
)
async def remove_availability_slot(
    mentor_id: str = Path(
        ...,
        description="Mentor user ULID",
        pattern=ULID_PATH_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    ),
    slot_id: str = Path(..., description="Slot ULID", pattern=ULID_PATH_PATTERN),
    current_user: User = Depends(get_current_active_user),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> Response:
    try:
        await asyncio.to_thread(
            availability_service.remove_availability_slot, mentor_id, current_user.id, slot_id
        )
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)
