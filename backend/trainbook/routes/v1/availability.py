# backend/trainbook/routes/v1/availability.py
"""
Trainer calendar routes - API v1

Versioned calendar endpoints under /api/v1/trainers/{trainer_id}.
All business logic delegated to AvailabilityService.

Endpoints:
    GET /availability                       → Records in a date range (with counts when course_id is given)
    PUT /availability                       → Set one day
    POST /availability/bulk                 → Set many days to one status
    POST /availability/release              → BOOKED -> AVAILABLE for a range
    DELETE /availability/{availability_id}  → Delete one record
    GET /blocked-dates                      → List per-date blocks
    POST /blocked-dates                     → Block a date (idempotent)
    DELETE /blocked-dates/{blocked_date_id} → Unblock a date
    GET /blocked-days                       → Weekly blackout set
    PUT /blocked-days                       → Replace the weekly blackout set
"""

from datetime import date
import logging
from typing import List, NoReturn, Optional, Union

from fastapi import APIRouter, Depends, Query, Response, status

from ...api.dependencies import get_actor_id, get_availability_service
from ...core.exceptions import DomainException
from ...schemas.availability import (
    AvailabilityBulkRequest,
    AvailabilityResponse,
    AvailabilityUpsertRequest,
    AvailabilityWithCountsResponse,
    BlockedDateCreate,
    BlockedDateResponse,
    BlockedDaysRequest,
    BlockedDaysResponse,
    DateRangeRequest,
)
from ...services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["availability-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


@router.get(
    "/{trainer_id}/availability",
    response_model=Union[List[AvailabilityWithCountsResponse], List[AvailabilityResponse]],
)
def get_availability(
    trainer_id: str,
    start_date: date = Query(...),
    end_date: date = Query(...),
    course_id: Optional[str] = Query(None, description="Annotate each day with booking counts"),
    service: AvailabilityService = Depends(get_availability_service),
) -> Union[List[AvailabilityWithCountsResponse], List[AvailabilityResponse]]:
    try:
        if course_id:
            rows = service.get_availability_with_booking_counts(
                trainer_id, start_date, end_date, course_id
            )
            return [AvailabilityWithCountsResponse.model_validate(row) for row in rows]
        records = service.get_availability(trainer_id, start_date, end_date)
        return [AvailabilityResponse.model_validate(record) for record in records]
    except DomainException as exc:
        handle_domain_exception(exc)


@router.put("/{trainer_id}/availability", response_model=AvailabilityResponse)
def set_availability(
    trainer_id: str,
    payload: AvailabilityUpsertRequest,
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityResponse:
    try:
        record = service.set_availability(trainer_id, payload.date, payload.status)
        return AvailabilityResponse.model_validate(record)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/{trainer_id}/availability/bulk", response_model=List[AvailabilityResponse])
def bulk_set_availability(
    trainer_id: str,
    payload: AvailabilityBulkRequest,
    actor_id: Optional[str] = Depends(get_actor_id),
    service: AvailabilityService = Depends(get_availability_service),
) -> List[AvailabilityResponse]:
    try:
        records = service.bulk_set_availability(trainer_id, payload.dates, payload.status, actor_id)
        return [AvailabilityResponse.model_validate(record) for record in records]
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/{trainer_id}/availability/release", response_model=List[AvailabilityResponse])
def release_dates(
    trainer_id: str,
    payload: DateRangeRequest,
    service: AvailabilityService = Depends(get_availability_service),
) -> List[AvailabilityResponse]:
    """Explicitly hand BOOKED days back to AVAILABLE."""
    try:
        released = service.release_dates(trainer_id, payload.start_date, payload.end_date)
        return [AvailabilityResponse.model_validate(record) for record in released]
    except DomainException as exc:
        handle_domain_exception(exc)


@router.delete(
    "/{trainer_id}/availability/{availability_id}", status_code=status.HTTP_204_NO_CONTENT
)
def delete_availability(
    trainer_id: str,
    availability_id: str,
    service: AvailabilityService = Depends(get_availability_service),
) -> Response:
    try:
        service.delete_availability(availability_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{trainer_id}/blocked-dates", response_model=List[BlockedDateResponse])
def list_blocked_dates(
    trainer_id: str,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    service: AvailabilityService = Depends(get_availability_service),
) -> List[BlockedDateResponse]:
    try:
        rows = service.list_blocked_dates(trainer_id, start_date, end_date)
        return [BlockedDateResponse.model_validate(row) for row in rows]
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post(
    "/{trainer_id}/blocked-dates",
    response_model=BlockedDateResponse,
    status_code=status.HTTP_201_CREATED,
)
def block_date(
    trainer_id: str,
    payload: BlockedDateCreate,
    service: AvailabilityService = Depends(get_availability_service),
) -> BlockedDateResponse:
    try:
        row = service.block_date(trainer_id, payload.blocked_date, payload.reason)
        return BlockedDateResponse.model_validate(row)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.delete(
    "/{trainer_id}/blocked-dates/{blocked_date_id}", status_code=status.HTTP_204_NO_CONTENT
)
def unblock_date(
    trainer_id: str,
    blocked_date_id: str,
    service: AvailabilityService = Depends(get_availability_service),
) -> Response:
    try:
        service.unblock_date(trainer_id, blocked_date_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{trainer_id}/blocked-days", response_model=BlockedDaysResponse)
def get_blocked_days(
    trainer_id: str,
    service: AvailabilityService = Depends(get_availability_service),
) -> BlockedDaysResponse:
    return BlockedDaysResponse(trainer_id=trainer_id, days=service.get_blocked_days(trainer_id))


@router.put("/{trainer_id}/blocked-days", response_model=BlockedDaysResponse)
def replace_blocked_days(
    trainer_id: str,
    payload: BlockedDaysRequest,
    service: AvailabilityService = Depends(get_availability_service),
) -> BlockedDaysResponse:
    try:
        days = service.replace_blocked_days(trainer_id, payload.days)
        return BlockedDaysResponse(trainer_id=trainer_id, days=days)
    except DomainException as exc:
        handle_domain_exception(exc)
