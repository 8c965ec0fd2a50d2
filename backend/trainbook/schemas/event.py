"""Schemas for event and registration endpoints."""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel


class EventFromCourseRequest(StrictRequestModel):
    course_id: str
    max_packs: Optional[int] = Field(None, ge=1)


class EventStatusUpdate(StrictRequestModel):
    status: str


class EventResponse(StrictModel):
    id: str
    course_id: str
    trainer_id: Optional[str] = None
    event_date: date
    start_date: date
    end_date: Optional[date] = None
    max_packs: Optional[int] = None
    status: str


class RegistrationCreate(StrictRequestModel):
    client_id: Optional[str] = None
    client_name: Optional[str] = Field(None, max_length=255)
    number_of_participants: int = 1


class ParticipantsAdd(StrictRequestModel):
    client_name: Optional[str] = Field(None, max_length=255)
    number_of_participants: int


class RegistrationApprove(StrictRequestModel):
    number_of_participants: Optional[int] = None


class RegistrationResponse(StrictModel):
    id: str
    event_id: str
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    number_of_participants: int
    status: str


class RemainingCapacityResponse(StrictModel):
    event_id: str
    max_packs: Optional[int] = None
    remaining: Optional[int] = None


class AutoCompleteResponse(StrictModel):
    completed: int
    event_ids: list[str]
