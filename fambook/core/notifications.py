from typing import Iterable, Optional

from sqlalchemy.orm import Session

from fambook.core.access import admin_user_ids, approved_member_user_ids
from fambook.models.family import Family
from fambook.models.notification import Notification


# --------------------------------------------------
# TYPES
# --------------------------------------------------
NEW_POST = "NEW_POST"
NEW_COMMENT = "NEW_COMMENT"
NEW_LIKE = "NEW_LIKE"
NEW_ALBUM = "NEW_ALBUM"
NEW_MEMBER = "NEW_MEMBER"
JOIN_REQUEST = "JOIN_REQUEST"
REQUEST_APPROVED = "REQUEST_APPROVED"
REQUEST_REJECTED = "REQUEST_REJECTED"
SPECIAL_DAY = "SPECIAL_DAY"


# --------------------------------------------------
# FAN-OUT
# --------------------------------------------------
# Every helper only adds rows to the session. The caller commits them
# together with the mutation that triggered them.

def notify(db: Session, user_ids: Iterable[str], type_: str, content: str) -> list[Notification]:
    rows = [
        Notification(user_id=user_id, type=type_, content=content, read=False)
        for user_id in dict.fromkeys(user_ids)
    ]
    db.add_all(rows)
    return rows


def notify_family(
    db: Session,
    family_id: str,
    actor_id: Optional[str],
    type_: str,
    content: str,
) -> list[Notification]:
    """Every APPROVED member of the family except the actor."""
    recipients = approved_member_user_ids(db, family_id, exclude_user_id=actor_id)
    return notify(db, recipients, type_, content)


def notify_author(
    db: Session,
    author_id: str,
    actor_id: str,
    type_: str,
    content: str,
) -> list[Notification]:
    if author_id == actor_id:
        return []
    return notify(db, [author_id], type_, content)


def notify_join_request(db: Session, family: Family, requester) -> list[Notification]:
    rows = notify(
        db,
        [requester.id],
        JOIN_REQUEST,
        f'Your request to join "{family.name}" has been submitted. '
        f"Please wait for admin approval.",
    )

    admins = [uid for uid in admin_user_ids(db, family) if uid != requester.id]
    rows += notify(
        db,
        admins,
        JOIN_REQUEST,
        f'{requester.full_name} has requested to join "{family.name}". '
        f"Please review their request.",
    )
    return rows
