# backend/trainbook/services/notification_service.py
"""
Best-effort side channels: in-app notifications and the activity trail.

Both are written after the triggering change has committed, in their own
short transaction. Any failure is reported as TransientInfraException so
the caller can log and discard it without touching the committed work.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import TransientInfraException
from ..models.notification import ActivityLog, Notification
from .base import BaseService

logger = logging.getLogger(__name__)


class NotificationService(BaseService):
    """Writes in-app notifications."""

    def __init__(self, db: Session):
        super().__init__(db)

    def notify(
        self,
        user_id: Optional[str],
        title: str,
        message: str,
        type: str,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[str] = None,
    ) -> Optional[Notification]:
        """Store a notification; a missing recipient is a silent no-op."""
        if not user_id:
            return None
        try:
            notification = Notification(
                user_id=user_id,
                title=title,
                message=message,
                type=type,
                related_entity_type=related_entity_type,
                related_entity_id=related_entity_id,
            )
            self.db.add(notification)
            self.db.commit()
            return notification
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise TransientInfraException(
                f"Notification for {user_id} could not be stored: {exc}",
                code="NOTIFICATION_FAILED",
            ) from exc


class ActivityLogService(BaseService):
    """Appends entries to the admin activity trail."""

    def __init__(self, db: Session):
        super().__init__(db)

    def log_activity(
        self,
        user_id: Optional[str],
        action_type: str,
        entity_type: str,
        entity_id: Optional[str],
        description: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ActivityLog:
        try:
            entry = ActivityLog(
                user_id=user_id,
                action_type=action_type,
                entity_type=entity_type,
                entity_id=entity_id,
                description=description,
                details=metadata,
            )
            self.db.add(entry)
            self.db.commit()
            return entry
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise TransientInfraException(
                f"Activity log for {entity_type}:{entity_id} could not be stored: {exc}",
                code="ACTIVITY_LOG_FAILED",
            ) from exc
