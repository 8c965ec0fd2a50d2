# backend/trainbook/core/exceptions.py
"""
Domain-specific exceptions for the trainer scheduling service.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Iterable, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

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

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException carrying the status code of the subclass."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when input is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class StateConflictException(ConflictException):
    """Raised when a record is not in a status that allows the requested change."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "STATE_CONFLICT",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, details=details)


class InvalidTransitionException(StateConflictException):
    """Raised when a booking status change is not in the transition table."""

    def __init__(self, booking_id: str, current: str, target: str):
        super().__init__(
            message=f"Booking {booking_id} cannot move from {current} to {target}",
            code="INVALID_TRANSITION",
            details={"booking_id": booking_id, "from": current, "to": target},
        )


class AvailabilityUnavailableException(StateConflictException):
    """Raised when selected availability records cannot be consumed."""

    def __init__(self, message: str, availability_ids: Iterable[str]):
        ids = sorted(availability_ids)
        super().__init__(
            message=f"{message}: {', '.join(ids)}",
            code="AVAILABILITY_UNAVAILABLE",
            details={"availability_ids": ids},
        )


class DuplicateEventException(StateConflictException):
    """Raised when an event already exists for the same course and date."""

    def __init__(self, course_id: str, event_date: str, existing_event_id: Optional[str] = None):
        super().__init__(
            message=f"Event already exists for course {course_id} on {event_date}",
            code="DUPLICATE_EVENT",
            details={
                "course_id": course_id,
                "event_date": event_date,
                "existing_event_id": existing_event_id,
            },
        )


class CapacityExceededException(StateConflictException):
    """Raised when a registration would push an event past maxPacks."""

    def __init__(self, requested: int, available: int):
        super().__init__(
            message=(
                f"Not enough slots available. Requested: {requested}, Available: {available}"
            ),
            code="CAPACITY_EXCEEDED",
            details={"requested": requested, "available": available},
        )


class TransientInfraException(ServiceException):
    """
    Raised by best-effort collaborators (notifications, activity logging).

    Callers catch it at the side-effect call site; it never reaches the API layer.
    """


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
