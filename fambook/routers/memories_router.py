from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from fambook.core.access import is_member
from fambook.core.identity import get_current_user
from fambook.database import get_db, transaction
from fambook.errors import AuthorizationError, ConflictError, NotFoundError
from fambook.models.album import Album
from fambook.models.memory import Memory
from fambook.models.post import Post
from fambook.models.user import User
from fambook.schemas.base import parse_payload
from fambook.schemas.memory_schema import MemoryCreate
from fambook.utils.responses import created, ok

router = APIRouter(prefix="/memories", tags=["Memories"])


def serialize_memory(memory: Memory) -> dict:
    return {
        "id": memory.id,
        "userId": memory.user_id,
        "albumId": memory.album_id,
        "postId": memory.post_id,
        "createdAt": memory.created_at,
    }


@router.post("")
def add_memory(
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    data = parse_payload(MemoryCreate, payload)

    if data.post_id:
        target = db.query(Post).filter(Post.id == data.post_id).first()
        existing = Memory.post_id == data.post_id
        label = "Post"
    else:
        target = db.query(Album).filter(Album.id == data.album_id).first()
        existing = Memory.album_id == data.album_id
        label = "Album"

    if not target:
        raise NotFoundError(f"{label} not found")

    if not is_member(db, me.id, target.family_id):
        raise AuthorizationError("You are not a member of this family")

    if db.query(Memory).filter(Memory.user_id == me.id, existing).first():
        raise ConflictError(f"{label} is already in your memories")

    with transaction(db):
        memory = Memory(user_id=me.id, post_id=data.post_id, album_id=data.album_id)
        db.add(memory)

    db.refresh(memory)
    return created(serialize_memory(memory), "Added to memories")


@router.delete("/{memory_id}")
def remove_memory(
    memory_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    memory = db.query(Memory).filter(Memory.id == memory_id).first()
    if not memory:
        raise NotFoundError("Memory not found")
    if memory.user_id != me.id:
        raise AuthorizationError("You can only remove your own memories")

    with transaction(db):
        db.delete(memory)

    return ok({"id": memory_id}, "Removed from memories")
