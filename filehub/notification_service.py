"""
Notification service.

Creates notification rows (fan-out to a de-duplicated recipient set) and
manages the caller's own notifications. Every read or write is scoped to the
caller; another profile's notification id behaves as if it did not exist.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from .db_models import DBNotification, DBProfile, new_id
from .exceptions import NotFoundError

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for creating and managing notifications."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Fan-out
    # =========================================================================

    def fan_out(
        self,
        content: str,
        notification_type: str,
        related_id: Optional[str],
        recipient_ids: Iterable[str],
    ) -> List[Dict[str, Any]]:
        """
        Add one notification per distinct recipient to the session.

        The caller commits. Returns plain dicts describing each row so they
        can be pushed to the change feed after the commit.
        """
        deliveries = []
        seen = set()

        for user_id in recipient_ids:
            if user_id is None or user_id in seen:
                continue
            seen.add(user_id)

            notification = DBNotification(
                id=new_id(),
                user_id=user_id,
                content=content,
                type=notification_type,
                related_id=related_id,
                is_read=False,
            )
            self.db.add(notification)
            deliveries.append({
                "id": notification.id,
                "user_id": user_id,
                "type": notification_type,
                "content": content,
                "related_id": related_id,
            })

        logger.info(f"Queued {len(deliveries)} '{notification_type}' notification(s) for {related_id}")
        return deliveries

    def notify_all_profiles(
        self,
        content: str,
        notification_type: str,
        related_id: Optional[str],
    ) -> List[Dict[str, Any]]:
        """Fan out to every profile."""
        recipient_ids = [row.id for row in self.db.query(DBProfile.id).all()]
        return self.fan_out(content, notification_type, related_id, recipient_ids)

    def delete_related(self, related_id: str) -> int:
        """Delete every notification pointing at a row (any owner). Caller commits."""
        return (
            self.db.query(DBNotification)
            .filter(DBNotification.related_id == related_id)
            .delete(synchronize_session=False)
        )

    # =========================================================================
    # Caller-scoped operations
    # =========================================================================

    def _own(self, profile: DBProfile, notification_id: str) -> DBNotification:
        notification = (
            self.db.query(DBNotification)
            .filter(
                DBNotification.id == notification_id,
                DBNotification.user_id == profile.id,
            )
            .first()
        )
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        return notification

    def list_notifications(self, profile: DBProfile, unread_only: bool = False) -> List[DBNotification]:
        """Caller's notifications, newest first."""
        query = self.db.query(DBNotification).filter(DBNotification.user_id == profile.id)
        if unread_only:
            query = query.filter(DBNotification.is_read.is_(False))
        return query.order_by(DBNotification.created_at.desc()).all()

    def unread_count(self, profile: DBProfile) -> int:
        return (
            self.db.query(DBNotification)
            .filter(
                DBNotification.user_id == profile.id,
                DBNotification.is_read.is_(False),
            )
            .count()
        )

    def mark_read(self, profile: DBProfile, notification_id: str) -> DBNotification:
        notification = self._own(profile, notification_id)
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_read(self, profile: DBProfile) -> int:
        updated = (
            self.db.query(DBNotification)
            .filter(
                DBNotification.user_id == profile.id,
                DBNotification.is_read.is_(False),
            )
            .update({DBNotification.is_read: True}, synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Marked {updated} notification(s) read for {profile.id}")
        return updated

    def delete_notification(self, profile: DBProfile, notification_id: str) -> None:
        notification = self._own(profile, notification_id)
        self.db.delete(notification)
        self.db.commit()

    def delete_all(self, profile: DBProfile) -> int:
        deleted = (
            self.db.query(DBNotification)
            .filter(DBNotification.user_id == profile.id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Deleted {deleted} notification(s) for {profile.id}")
        return deleted
