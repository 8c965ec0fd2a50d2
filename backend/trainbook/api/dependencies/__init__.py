# backend/trainbook/api/dependencies/__init__.py
"""
FastAPI dependencies shared by the v1 routers.
"""

from .database import get_db
from .services import (
    get_actor_id,
    get_availability_service,
    get_booking_service,
    get_conflict_checker,
    get_conflict_resolver,
    get_event_service,
)

__all__ = [
    "get_actor_id",
    "get_availability_service",
    "get_booking_service",
    "get_conflict_checker",
    "get_conflict_resolver",
    "get_db",
    "get_event_service",
]
