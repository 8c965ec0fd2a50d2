# backend/trainbook/models/notification.py
"""
In-app notifications and the admin activity trail.

Both tables are written best-effort after the triggering change commits.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
import ulid

from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Notification(Base):
    """A message for a single user about a related entity."""

    __tablename__ = "notifications"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=False)
    related_entity_type = Column(String(50), nullable=True)
    related_entity_id = Column(String(26), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc, server_default=func.now())

    def __repr__(self) -> str:
        return f"<Notification {self.type} to={self.user_id}>"


class ActivityLog(Base):
    """Who did what to which entity."""

    __tablename__ = "activity_logs"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(26), nullable=True, index=True)
    action_type = Column(String(50), nullable=False)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(64), nullable=True)
    description = Column(Text, nullable=False)
    details = Column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc, server_default=func.now())

    def __repr__(self) -> str:
        return f"<ActivityLog {self.action_type} {self.entity_type}:{self.entity_id}>"
