import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session, joinedload

from fambook.core import notifications
from fambook.core.access import approved_family_ids, require_member
from fambook.core.identity import get_current_user
from fambook.database import get_db, transaction
from fambook.errors import AuthorizationError, NotFoundError, ValidationError
from fambook.models.album import Album
from fambook.models.family import Family
from fambook.models.special_day import SpecialDay
from fambook.models.user import User
from fambook.schemas.base import parse_payload
from fambook.schemas.special_day_schema import SpecialDayCreate, SpecialDayUpdate
from fambook.utils.dates import horizon
from fambook.utils.responses import created, ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/special-days", tags=["Special Days"])


def serialize_special_day(day: SpecialDay, me: User) -> dict:
    return {
        "id": day.id,
        "familyId": day.family_id,
        "family": {"id": day.family.id, "name": day.family.name},
        "title": day.title,
        "description": day.description,
        "date": day.date,
        "time": day.time,
        "venue": day.venue,
        "type": day.type,
        "createdById": day.created_by_id,
        "createdAt": day.created_at,
        "isFamilyAdmin": day.family.created_by_id == me.id,
    }


def day_for_creator(db: Session, me: User, day_id: str, action: str) -> SpecialDay:
    day = db.query(SpecialDay).filter(SpecialDay.id == day_id).first()
    if not day:
        raise NotFoundError("Special day not found")
    if day.family.created_by_id != me.id:
        raise AuthorizationError(f"Only the family admin can {action} this event")
    return day


@router.get("")
def upcoming_special_days(
    time_frame: str = Query("thismonth", alias="timeFrame"),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    # Unknown frames fall back to the month window
    time_frame = (time_frame or "thismonth").lower()
    now = datetime.utcnow()

    q = (
        db.query(SpecialDay)
        .options(joinedload(SpecialDay.family))
        .filter(SpecialDay.family_id.in_(approved_family_ids(db, me.id)))
    )
    if time_frame != "all":
        start = datetime(now.year, now.month, now.day) - timedelta(days=1)
        q = q.filter(SpecialDay.date >= start, SpecialDay.date <= horizon(now, time_frame))

    days = q.order_by(SpecialDay.date.asc()).all()
    return ok([serialize_special_day(d, me) for d in days], "Special days fetched successfully")


@router.post("")
def create_special_day(
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    family_id = payload.get("familyId") if isinstance(payload, dict) else None
    if not isinstance(family_id, str) or not family_id:
        raise ValidationError(
            "Invalid input",
            errors=[{"field": "familyId", "message": "Field required", "type": "missing"}],
        )

    access = require_member(db, me, family_id)
    data = parse_payload(SpecialDayCreate, payload)
    family: Family = access.family

    with transaction(db):
        day = SpecialDay(
            family_id=family.id,
            created_by_id=me.id,
            title=data.title.strip(),
            description=data.description,
            date=data.date,
            time=data.time,
            venue=data.venue,
            type=data.type,
        )
        db.add(day)

        notifications.notify_family(
            db,
            family.id,
            me.id,
            notifications.SPECIAL_DAY,
            f'{me.full_name} added a new event "{day.title}" in {family.name}',
        )

    db.refresh(day)
    logger.info("Special day %s created in family %s", day.id, family.id)
    return created(serialize_special_day(day, me), "Special day created successfully")


@router.patch("/{day_id}")
def update_special_day(
    day_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    day = day_for_creator(db, me, day_id, "update")

    data = parse_payload(SpecialDayUpdate, payload)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("Nothing to update")

    with transaction(db):
        for field, value in changes.items():
            setattr(day, field, value)

    db.refresh(day)
    return ok(serialize_special_day(day, me), "Special day updated successfully")


@router.delete("/{day_id}")
def delete_special_day(
    day_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    day = day_for_creator(db, me, day_id, "delete")

    with transaction(db):
        # Albums outlive the event they were attached to
        db.query(Album).filter(Album.event_id == day.id).update(
            {Album.event_id: None}, synchronize_session=False
        )
        db.delete(day)

    return ok({"id": day_id}, "Special day deleted successfully")
