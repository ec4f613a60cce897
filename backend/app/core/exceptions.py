# backend/app/core/exceptions.py
"""
Domain-specific exceptions for the mentorship platform.

These exceptions carry business-focused error messages and a stable error
code. The API layer converts them into structured HTTP responses with
``to_http_exception`` (see ``app.main`` for the global handler).
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    headers: Optional[Dict[str, str]] = None

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail=self.to_dict(),
            headers=self.headers,
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class UnauthorizedException(DomainException):
    """Raised when user is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED
    headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message or "An error occurred processing your request",
            "code": self.code,
            "details": self.details if self.details else {},
        }


class PersistenceException(ServiceException):
    """Raised when the database rejects or loses a write; the caller may retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    headers = {"Retry-After": "1"}

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message or "The operation could not be saved. Please retry.",
            code="PERSISTENCE_ERROR",
            details=details or {},
        )


# Specific business exceptions


class BookingConflictException(ConflictException):
    """Raised when a session overlaps an existing session of the mentor."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot is already booked",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class AvailabilityOverlapException(ConflictException):
    """Raised when an availability window overlaps an existing slot or session."""

    def __init__(
        self,
        specific_date: str,
        new_range: str,
        conflicting_range: str,
        *,
        conflict_type: str = "slot",
    ):
        super().__init__(
            message=(
                f"Overlapping {conflict_type} on {specific_date}: "
                f"{new_range} conflicts with {conflicting_range}"
            ),
            code="AVAILABILITY_OVERLAP",
            details={
                "date": specific_date,
                "new_slot": new_range,
                "conflicting_slot": conflicting_range,
                "conflict_type": conflict_type,
            },
        )


class InsufficientFundsException(ValidationException):
    """Raised when the mentee balance cannot cover the session price."""

    def __init__(self, required: Decimal, available: Decimal):
        super().__init__(
            message=(
                f"Insufficient balance. Session costs ${required:.2f} "
                f"but your balance is ${available:.2f}"
            ),
            code="INSUFFICIENT_FUNDS",
            details={
                "required": f"{required:.2f}",
                "available": f"{available:.2f}",
            },
        )


class InvalidSessionTransitionException(ValidationException):
    """Raised when a session cannot move from its current status to the requested one."""

    def __init__(self, session_id: str, current: str, target: str):
        super().__init__(
            message=f"Cannot change session status from {current} to {target}",
            code="INVALID_SESSION_TRANSITION",
            details={
                "session_id": session_id,
                "current_status": current,
                "requested_status": target,
            },
        )


class BookingLockTimeoutException(ConflictException):
    """Raised when the per-mentor booking lock could not be acquired in time."""

    headers = {"Retry-After": "1"}

    def __init__(self, mentor_id: str):
        super().__init__(
            message="Another booking for this mentor is in progress. Please retry.",
            code="BOOKING_LOCK_TIMEOUT",
            details={"mentor_id": mentor_id},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
