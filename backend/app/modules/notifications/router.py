"""
Notification inbox API routes.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.core.database import get_db
from app.core.errors import atomic
from app.modules.notifications.services import (
    delete_notification,
    delete_read_notifications,
    list_notifications,
    mark_all_read,
    mark_read,
    serialize_notification,
    unread_count,
)

router = APIRouter()


@router.get("/")
async def get_notifications(
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Latest unexpired notifications, newest first."""
    return [serialize_notification(n) for n in list_notifications(db, owner_id)]


@router.get("/unread-count")
async def get_unread_count(
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return {"count": unread_count(db, owner_id)}


@router.put("/read-all")
async def read_all(
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    with atomic(db, "mark notifications read"):
        updated = mark_all_read(db, owner_id)
    return {"message": "All notifications marked as read", "updated": updated}


@router.put("/{notification_id}/read")
async def read_one(
    notification_id: int,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    with atomic(db, "mark notification read"):
        notification = mark_read(db, owner_id, notification_id)
    return serialize_notification(notification)


@router.delete("/{notification_id}")
async def delete_one(
    notification_id: int,
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    with atomic(db, "delete notification"):
        delete_notification(db, owner_id, notification_id)
    return {"message": "Notification deleted"}


@router.delete("/")
async def delete_read(
    owner_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Delete every notification already marked as read."""
    with atomic(db, "delete read notifications"):
        deleted = delete_read_notifications(db, owner_id)
    return {"message": "Read notifications deleted", "deleted": deleted}
