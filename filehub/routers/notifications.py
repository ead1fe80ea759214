"""
Notifications Router for FileHub.

All endpoints act on the caller's own notifications only.

Endpoints:
- GET /notifications - Newest first (unread_only=true to filter)
- GET /notifications/unread-count - Number of unread notifications
- POST /notifications/{notification_id}/read - Mark one read
- POST /notifications/read-all - Mark all read
- DELETE /notifications/{notification_id} - Delete one
- DELETE /notifications - Delete all
"""

import logging
from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..db_models import DBProfile
from ..dependencies import get_current_user
from ..models import BulkResult, Notification, UnreadCount
from ..notification_service import NotificationService
from ..realtime import ChangeAction, send_notification_change

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
    responses={401: {"description": "Unauthorized"}},
)


@router.get("", response_model=List[Notification])
async def list_notifications(
    unread_only: bool = Query(False),
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotificationService(db).list_notifications(current_user, unread_only=unread_only)


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UnreadCount(count=NotificationService(db).unread_count(current_user))


@router.post("/read-all", response_model=BulkResult)
async def mark_all_read(
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    updated = NotificationService(db).mark_all_read(current_user)
    await send_notification_change(current_user.id, ChangeAction.UPDATE, None)
    return BulkResult(affected=updated)


@router.post("/{notification_id}/read", response_model=Notification)
async def mark_read(
    notification_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    notification = NotificationService(db).mark_read(current_user, notification_id)
    await send_notification_change(current_user.id, ChangeAction.UPDATE, notification.id)
    return notification


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    NotificationService(db).delete_notification(current_user, notification_id)
    await send_notification_change(current_user.id, ChangeAction.DELETE, notification_id)


@router.delete("", response_model=BulkResult)
async def delete_all_notifications(
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    deleted = NotificationService(db).delete_all(current_user)
    await send_notification_change(current_user.id, ChangeAction.DELETE, None)
    return BulkResult(affected=deleted)
