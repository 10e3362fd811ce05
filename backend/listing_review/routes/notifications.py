from uuid import UUID
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from sqlalchemy import and_

from ..database import get_db
from ..auth import get_current_user
from .. import errors, models, notify, schemas

# purpose: in-app inbox and channel preferences for draft review notifications
# status: active

CHANNELS = ("in_app", "email")

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/", response_model=list[schemas.NotificationOut])
async def list_notifications(
    is_read: Optional[bool] = Query(None, description="Filter by read status"),
    event_type: Optional[str] = Query(None, description="Filter by event type"),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    query = db.query(models.Notification).filter(models.Notification.user_id == user.id)
    if is_read is not None:
        query = query.filter(models.Notification.is_read == is_read)
    if event_type:
        query = query.filter(models.Notification.event_type == event_type)
    return query.order_by(models.Notification.created_at.desc()).all()


@router.post("/{notification_id}/read", response_model=schemas.NotificationOut)
async def mark_read(
    notification_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    notif = (
        db.query(models.Notification)
        .filter_by(id=notification_id, user_id=user.id)
        .first()
    )
    if not notif:
        raise errors.NotFoundError("Notification not found")
    notif.is_read = True
    notif.read_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(notif)
    return notif


@router.post("/mark-all-read")
async def mark_all_read(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Mark all unread notifications as read"""
    now = datetime.now(timezone.utc)
    updated = (
        db.query(models.Notification)
        .filter(
            and_(
                models.Notification.user_id == user.id,
                models.Notification.is_read.is_(False),
            )
        )
        .all()
    )
    for notif in updated:
        notif.is_read = True
        notif.read_at = now
    db.commit()
    return {"message": "All notifications marked as read", "updated": len(updated)}


@router.get("/preferences", response_model=list[schemas.NotificationPreferenceOut])
async def list_preferences(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return db.query(models.NotificationPreference).filter_by(user_id=user.id).all()


@router.put(
    "/preferences/{channel}",
    response_model=schemas.NotificationPreferenceOut,
)
async def set_preference(
    channel: str,
    pref: schemas.NotificationPreferenceUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    if channel not in CHANNELS:
        raise errors.ValidationError(f"Unknown channel '{channel}'")
    obj = (
        db.query(models.NotificationPreference)
        .filter_by(user_id=user.id, pref_type=notify.PREF_TYPE, channel=channel)
        .first()
    )
    if obj:
        obj.enabled = pref.enabled
    else:
        obj = models.NotificationPreference(
            user_id=user.id,
            pref_type=notify.PREF_TYPE,
            channel=channel,
            enabled=pref.enabled,
        )
        db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj
