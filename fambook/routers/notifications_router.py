from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fambook.config import settings
from fambook.core.identity import get_current_user
from fambook.database import get_db, transaction
from fambook.errors import NotFoundError
from fambook.models.notification import Notification
from fambook.models.user import User
from fambook.schemas.notification_schema import MarkNotificationsRead
from fambook.utils.responses import ok

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def serialize_notification(n: Notification) -> dict:
    return {
        "id": n.id,
        "type": n.type,
        "content": n.content,
        "read": n.read,
        "createdAt": n.created_at,
    }


@router.get("")
def list_notifications(
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    items = (
        db.query(Notification)
        .filter(Notification.user_id == me.id)
        .order_by(Notification.created_at.desc())
        .limit(settings.NOTIFICATION_FEED_SIZE)
        .all()
    )
    unread = db.query(Notification).filter(
        Notification.user_id == me.id,
        Notification.read.is_(False),
    ).count()

    return ok(
        {
            "notifications": [serialize_notification(n) for n in items],
            "unreadCount": unread,
        },
        "Notifications fetched successfully",
    )


@router.post("")
def mark_read(
    payload: Optional[MarkNotificationsRead] = None,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    q = db.query(Notification).filter(
        Notification.user_id == me.id,
        Notification.read.is_(False),
    )
    # No body or no ids marks everything
    if payload is not None and payload.notification_ids is not None:
        q = q.filter(Notification.id.in_(payload.notification_ids))

    with transaction(db):
        updated = q.update({Notification.read: True}, synchronize_session=False)

    return ok({"updated": updated}, "Notifications marked as read")


@router.post("/{notification_id}/read")
def mark_one_read(
    notification_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    n = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == me.id,
    ).first()
    if not n:
        raise NotFoundError("Notification not found")

    with transaction(db):
        n.read = True

    return ok(serialize_notification(n), "Notification marked as read")
