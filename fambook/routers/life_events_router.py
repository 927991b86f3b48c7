from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from fambook.core.identity import get_current_user
from fambook.database import get_db, transaction
from fambook.errors import AuthorizationError, NotFoundError, ValidationError
from fambook.models.life_event import LifeEvent
from fambook.models.user import User
from fambook.schemas.base import parse_payload
from fambook.schemas.user_schema import LifeEventCreate, LifeEventUpdate
from fambook.utils.responses import created, ok

router = APIRouter(prefix="/life-events", tags=["Life Events"])


def serialize_life_event(event: LifeEvent) -> dict:
    return {
        "id": event.id,
        "userId": event.user_id,
        "title": event.title,
        "eventDate": event.event_date,
        "eventType": event.event_type,
        "location": event.location,
        "createdAt": event.created_at,
        "updatedAt": event.updated_at,
    }


def get_life_event(db: Session, event_id: str) -> LifeEvent:
    event = db.query(LifeEvent).filter(LifeEvent.id == event_id).first()
    if not event:
        raise NotFoundError("Life event not found")
    return event


def own_life_event(db: Session, me: User, event_id: str) -> LifeEvent:
    event = get_life_event(db, event_id)
    if event.user_id != me.id:
        raise AuthorizationError("You can only change your own life events")
    return event


@router.post("")
def create_life_event(
    payload: LifeEventCreate,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    with transaction(db):
        event = LifeEvent(
            user_id=me.id,
            title=payload.title.strip(),
            event_date=payload.event_date,
            event_type=payload.event_type,
            location=payload.location,
        )
        db.add(event)

    db.refresh(event)
    return created(serialize_life_event(event), "Life event created successfully")


@router.get("/{event_id}")
def read_life_event(
    event_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return ok(serialize_life_event(get_life_event(db, event_id)), "Life event fetched successfully")


@router.patch("/{event_id}")
def update_life_event(
    event_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    event = own_life_event(db, me, event_id)
    data = parse_payload(LifeEventUpdate, payload)

    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("Nothing to update")

    with transaction(db):
        for field, value in changes.items():
            setattr(event, field, value)

    db.refresh(event)
    return ok(serialize_life_event(event), "Life event updated successfully")


@router.delete("/{event_id}")
def delete_life_event(
    event_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    event = own_life_event(db, me, event_id)

    with transaction(db):
        db.delete(event)

    return ok({"id": event_id}, "Life event deleted successfully")
