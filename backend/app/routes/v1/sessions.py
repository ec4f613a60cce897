# backend/app/routes/v1/sessions.py
"""
Mentorship session routes - API v1

Versioned session endpoints under /api/v1/sessions.
All business logic delegated to SessionService.

Endpoints:
    POST / - Book a session (caller is the mentee)
    GET / - Sessions where the caller is mentor or mentee
    GET /{session_id} - One session (parties only)
    POST /{session_id}/accept - Mentor accepts a pending request
    POST /{session_id}/reject - Mentor declines a pending request, mentee refunded
    POST /{session_id}/cancel - Either party cancels, payment reversed
    POST /{session_id}/reschedule - Either party moves a pending/accepted session
    POST /{session_id}/confirm - Mentee confirms an accepted session
    POST /{session_id}/start - Either party starts a confirmed session
    POST /{session_id}/complete - Mentor completes a session in progress
"""

import asyncio
import logging
from typing import Callable, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, status

from ...api.dependencies import get_current_active_user, get_session_service
from ...core.exceptions import DomainException
from ...models.session import MentorshipSession
from ...models.user import User
from ...schemas.session import (
    SessionCancel,
    SessionCreate,
    SessionListResponse,
    SessionReschedule,
    SessionResponse,
)
from ...services.session_service import SessionService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["sessions-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"

SESSION_ID_PATH = {
    "description": "Session ULID",
    "pattern": ULID_PATH_PATTERN,
    "examples": ["01HF4G12ABCDEF3456789XYZAB"],
}


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


async def _run_transition(
    operation: Callable[..., MentorshipSession], *args: object
) -> SessionResponse:
    try:
        session = await asyncio.to_thread(operation, *args)
        return SessionResponse.model_validate(session)
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 1: Static routes (no path parameters)
# ============================================================================


@router.post(
    "",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid request or insufficient balance"},
        404: {"description": "Mentor not found"},
        409: {"description": "Time slot already booked"},
    },
)
async def create_session(
    payload: SessionCreate = Body(...),
    current_user: User = Depends(get_current_active_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionResponse:
    """
    Book a session with a mentor.

    The mentee is charged and the mentor credited in the same transaction
    as the reservation. A slot that is already booked is a conflict (409,
    BOOKING_CONFLICT) rather than a bad request. Missing fields fail request
    validation with 422; invalid values are rejected with 400 and a code.
    """
    try:
        session = await asyncio.to_thread(
            session_service.create_session,
            current_user.id,
            payload.mentor_id,
            payload.start_time,
            payload.topic,
            payload.duration,
        )
        return SessionResponse.model_validate(session)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    current_user: User = Depends(get_current_active_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionListResponse:
    try:
        sessions = await asyncio.to_thread(session_service.list_sessions, current_user.id)
        return SessionListResponse(
            sessions=[SessionResponse.model_validate(s) for s in sessions],
            total=len(sessions),
        )
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 2: Dynamic routes (/{session_id})
# ============================================================================


@router.get(
    "/{session_id}",
    response_model=SessionResponse,
    responses={403: {"description": "Not a party"}, 404: {"description": "Session not found"}},
)
async def get_session(
    session_id: str = Path(..., **SESSION_ID_PATH),
    current_user: User = Depends(get_current_active_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionResponse:
    return await _run_transition(session_service.get_session, session_id, current_user.id)


@router.post("/{session_id}/accept", response_model=SessionResponse)
async def accept_session(
    session_id: str = Path(..., **SESSION_ID_PATH),
    current_user: User = Depends(get_current_active_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionResponse:
    return await _run_transition(session_service.accept_session, session_id, current_user.id)


@router.post("/{session_id}/reject", response_model=SessionResponse)
async def reject_session(
    session_id: str = Path(..., **SESSION_ID_PATH),
    payload: Optional[SessionCancel] = Body(None),
    current_user: User = Depends(get_current_active_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionResponse:
    reason = payload.reason if payload else None
    return await _run_transition(
        session_service.reject_session, session_id, current_user.id, reason
    )


@router.post(
    "/{session_id}/cancel",
    response_model=SessionResponse,
    responses={404: {"description": "Session not found"}},
)
async def cancel_session(
    session_id: str = Path(..., **SESSION_ID_PATH),
    payload: Optional[SessionCancel] = Body(None),
    current_user: User = Depends(get_current_active_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionResponse:
    """Cancel a session; the mentee is refunded and the mentor's credit reversed."""
    reason = payload.reason if payload else None
    return await _run_transition(
        session_service.cancel_session, session_id, current_user.id, reason
    )


@router.post(
    "/{session_id}/reschedule",
    response_model=SessionResponse,
    responses={404: {"description": "Session not found"}, 409: {"description": "Time conflict"}},
)
async def reschedule_session(
    session_id: str = Path(..., **SESSION_ID_PATH),
    payload: SessionReschedule = Body(...),
    current_user: User = Depends(get_current_active_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionResponse:
    return await _run_transition(
        session_service.reschedule_session, session_id, current_user.id, payload.start_time
    )


@router.post("/{session_id}/confirm", response_model=SessionResponse)
async def confirm_session(
    session_id: str = Path(..., **SESSION_ID_PATH),
    current_user: User = Depends(get_current_active_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionResponse:
    return await _run_transition(session_service.confirm_session, session_id, current_user.id)


@router.post("/{session_id}/start", response_model=SessionResponse)
async def start_session(
    session_id: str = Path(..., **SESSION_ID_PATH),
    current_user: User = Depends(get_current_active_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionResponse:
    return await _run_transition(session_service.start_session, session_id, current_user.id)


@router.post("/{session_id}/complete", response_model=SessionResponse)
async def complete_session(
    session_id: str = Path(..., **SESSION_ID_PATH),
    current_user: User = Depends(get_current_active_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionResponse:
    return await _run_transition(session_service.complete_session, session_id, current_user.id)
