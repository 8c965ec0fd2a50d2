# backend/trainbook/routes/v1/events.py
"""
Event routes - API v1

Versioned event endpoints under /api/v1/events.
All business logic delegated to EventService.

Endpoints:
    POST /from-course                                → Materialize an event for a fixed-date course
    POST /auto-complete-past                         → Complete ACTIVE events that have ended
    POST /registrations/{registration_id}/approve    → Approve (optionally resize) a registration
    POST /registrations/{registration_id}/cancel     → Cancel a registration
    PUT /{event_id}/status                           → ACTIVE -> COMPLETED / CANCELLED
    POST /{event_id}/registrations                   → Register for an event
    POST /{event_id}/participants                    → Add pre-approved participants
    GET /{event_id}/capacity                         → Remaining seats
"""

from datetime import date
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Body, Depends, status

from ...api.dependencies import get_actor_id, get_event_service
from ...core.exceptions import DomainException
from ...schemas.event import (
    AutoCompleteResponse,
    EventFromCourseRequest,
    EventResponse,
    EventStatusUpdate,
    ParticipantsAdd,
    RegistrationApprove,
    RegistrationCreate,
    RegistrationResponse,
    RemainingCapacityResponse,
)
from ...services.event_service import EventService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["events-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


@router.post("/from-course", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event_from_course(
    payload: EventFromCourseRequest,
    actor_id: Optional[str] = Depends(get_actor_id),
    service: EventService = Depends(get_event_service),
) -> EventResponse:
    try:
        event = service.create_event_from_course(
            payload.course_id, actor_id=actor_id, max_packs=payload.max_packs
        )
        return EventResponse.model_validate(event)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/auto-complete-past", response_model=AutoCompleteResponse)
def auto_complete_past_events(
    today: Optional[date] = Body(None, embed=True),
    service: EventService = Depends(get_event_service),
) -> AutoCompleteResponse:
    """Defaults to the server's current date when ``today`` is omitted."""
    events = service.auto_complete_past_events(today or date.today())
    return AutoCompleteResponse(completed=len(events), event_ids=[e.id for e in events])


@router.post(
    "/registrations/{registration_id}/approve", response_model=RegistrationResponse
)
def approve_registration(
    registration_id: str,
    payload: Optional[RegistrationApprove] = None,
    service: EventService = Depends(get_event_service),
) -> RegistrationResponse:
    try:
        registration = service.approve_registration(
            registration_id, payload.number_of_participants if payload else None
        )
        return RegistrationResponse.model_validate(registration)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/registrations/{registration_id}/cancel", response_model=RegistrationResponse)
def cancel_registration(
    registration_id: str,
    service: EventService = Depends(get_event_service),
) -> RegistrationResponse:
    try:
        return RegistrationResponse.model_validate(service.cancel_registration(registration_id))
    except DomainException as exc:
        handle_domain_exception(exc)


@router.put("/{event_id}/status", response_model=EventResponse)
def update_event_status(
    event_id: str,
    payload: EventStatusUpdate,
    actor_id: Optional[str] = Depends(get_actor_id),
    service: EventService = Depends(get_event_service),
) -> EventResponse:
    try:
        event = service.update_event_status(event_id, payload.status, actor_id)
        return EventResponse.model_validate(event)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post(
    "/{event_id}/registrations",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
def register_for_event(
    event_id: str,
    payload: RegistrationCreate,
    service: EventService = Depends(get_event_service),
) -> RegistrationResponse:
    try:
        registration = service.register_for_event(
            event_id,
            client_id=payload.client_id,
            client_name=payload.client_name,
            number_of_participants=payload.number_of_participants,
        )
        return RegistrationResponse.model_validate(registration)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post(
    "/{event_id}/participants",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_participants(
    event_id: str,
    payload: ParticipantsAdd,
    service: EventService = Depends(get_event_service),
) -> RegistrationResponse:
    try:
        registration = service.add_participants(
            event_id, payload.client_name, payload.number_of_participants
        )
        return RegistrationResponse.model_validate(registration)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.get("/{event_id}/capacity", response_model=RemainingCapacityResponse)
def get_remaining_capacity(
    event_id: str,
    service: EventService = Depends(get_event_service),
) -> RemainingCapacityResponse:
    try:
        event = service.get_event(event_id)
        remaining = service.get_remaining_capacity(event_id)
        return RemainingCapacityResponse(
            event_id=event_id, max_packs=event.max_packs, remaining=remaining
        )
    except DomainException as exc:
        handle_domain_exception(exc)
