# backend/trainbook/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService, ConflictChecker and
ConflictResolver.

Endpoints:
    GET /conflicts/detect              → Conflict report for a trainer and range
    POST /conflicts/resolve            → Apply reschedule / override / cancel
    POST /                             → Create a booking request
    GET /{booking_id}                  → Get one booking
    GET /{booking_id}/conflicting      → Other APPROVED bookings on the same date
    POST /{booking_id}/approve         → PENDING/TENTATIVE -> APPROVED
    POST /{booking_id}/deny            → PENDING -> DENIED
    POST /{booking_id}/cancel          → -> CANCELLED
    POST /{booking_id}/complete        → CONFIRMED -> COMPLETED
    POST /{booking_id}/confirm         → APPROVED -> CONFIRMED with availability ids
    PUT /{booking_id}/status           → Generic transition checked against the table
"""

from datetime import date
import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies import (
    get_actor_id,
    get_booking_service,
    get_conflict_checker,
    get_conflict_resolver,
)
from ...core.exceptions import DomainException
from ...schemas.booking import (
    BookingConfirmRequest,
    BookingConfirmResponse,
    BookingCreate,
    BookingResponse,
    BookingStatusUpdate,
)
from ...schemas.conflict import ConflictReportResponse, ConflictResolveRequest
from ...schemas.event import EventResponse
from ...services.booking_service import BookingService
from ...services.conflict_checker import ConflictChecker
from ...services.conflict_resolver import ConflictResolver

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


# Static routes first (before dynamic routes with path parameters)


@router.get("/conflicts/detect", response_model=ConflictReportResponse)
def detect_conflicts(
    trainer_id: str = Query(...),
    start_date: date = Query(...),
    end_date: Optional[date] = Query(None),
    checker: ConflictChecker = Depends(get_conflict_checker),
) -> ConflictReportResponse:
    try:
        report = checker.detect_conflicts(trainer_id, start_date, end_date)
        return ConflictReportResponse.model_validate(report)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/conflicts/resolve", response_model=BookingResponse)
def resolve_conflict(
    payload: ConflictResolveRequest,
    actor_id: Optional[str] = Depends(get_actor_id),
    resolver: ConflictResolver = Depends(get_conflict_resolver),
) -> BookingResponse:
    try:
        booking = resolver.resolve_conflict(
            payload.booking_id,
            payload.resolution,
            new_date=payload.new_date,
            reason=payload.reason,
            actor_id=actor_id,
        )
        return BookingResponse.model_validate(booking)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreate,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = service.create_booking(**payload.model_dump())
        return BookingResponse.model_validate(booking)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.model_validate(service.get_booking(booking_id))
    except DomainException as exc:
        handle_domain_exception(exc)


@router.get("/{booking_id}/conflicting", response_model=List[BookingResponse])
def get_conflicting_bookings(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    bookings = service.get_conflicting_bookings(booking_id)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.post("/{booking_id}/approve", response_model=BookingResponse)
def approve_booking(
    booking_id: str,
    actor_id: Optional[str] = Depends(get_actor_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.model_validate(service.approve_booking(booking_id, actor_id))
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/{booking_id}/deny", response_model=BookingResponse)
def deny_booking(
    booking_id: str,
    actor_id: Optional[str] = Depends(get_actor_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.model_validate(service.deny_booking(booking_id, actor_id))
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: str,
    actor_id: Optional[str] = Depends(get_actor_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.model_validate(service.cancel_booking(booking_id, actor_id))
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
def complete_booking(
    booking_id: str,
    actor_id: Optional[str] = Depends(get_actor_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.model_validate(service.complete_booking(booking_id, actor_id))
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/{booking_id}/confirm", response_model=BookingConfirmResponse)
def confirm_booking(
    booking_id: str,
    payload: BookingConfirmRequest,
    actor_id: Optional[str] = Depends(get_actor_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingConfirmResponse:
    """
    Confirm an APPROVED booking against admin-selected availability rows.

    Returns the confirmed booking and the event materialized for it.
    """
    try:
        booking, event = service.confirm_booking(
            booking_id,
            payload.availability_ids,
            payload.total_slots,
            payload.registered_participants,
            event_date=payload.event_date,
            actor_id=actor_id,
        )
        return BookingConfirmResponse(
            booking=BookingResponse.model_validate(booking),
            event=EventResponse.model_validate(event),
        )
    except DomainException as exc:
        handle_domain_exception(exc)


@router.put("/{booking_id}/status", response_model=BookingResponse)
def update_booking_status(
    booking_id: str,
    payload: BookingStatusUpdate,
    actor_id: Optional[str] = Depends(get_actor_id),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = service.transition_booking(booking_id, payload.status, actor_id)
        return BookingResponse.model_validate(booking)
    except DomainException as exc:
        handle_domain_exception(exc)
