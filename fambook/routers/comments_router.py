from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from fambook.core.identity import get_current_user
from fambook.core.serializers import serialize_comment
from fambook.database import get_db, transaction
from fambook.errors import AuthorizationError, NotFoundError
from fambook.models.comment import Comment
from fambook.models.user import User
from fambook.schemas.base import parse_payload
from fambook.schemas.post_schema import CommentUpdate
from fambook.utils.responses import no_content, ok

router = APIRouter(prefix="/comments", tags=["Comments"])


def own_comment(db: Session, me: User, comment_id: str, action: str) -> Comment:
    comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if not comment:
        raise NotFoundError("Comment not found")
    if comment.user_id != me.id:
        raise AuthorizationError(f"You can only {action} your own comments")
    return comment


@router.patch("/{comment_id}")
def edit_comment(
    comment_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    comment = own_comment(db, me, comment_id, "edit")
    data = parse_payload(CommentUpdate, payload)

    with transaction(db):
        comment.content = data.content.strip()

    db.refresh(comment)
    return ok(serialize_comment(comment, me), "Comment updated successfully")


@router.delete("/{comment_id}")
def delete_comment(
    comment_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    comment = own_comment(db, me, comment_id, "delete")

    with transaction(db):
        db.delete(comment)

    return no_content()
