from sqlalchemy import func
from sqlalchemy.orm import Session

from fambook.models.comment import Comment
from fambook.models.family_member import FamilyMember
from fambook.models.like import Like
from fambook.models.media import Media
from fambook.models.memory import Memory
from fambook.models.post import Post
from fambook.models.user import User
from fambook.utils.urls import absolute_media_url


def serialize_user(user: User | None) -> dict | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "fullName": user.full_name,
        "imageUrl": absolute_media_url(user.avatar),
    }


def serialize_member(member: FamilyMember) -> dict:
    return {
        "id": member.id,
        "familyId": member.family_id,
        "userId": member.user_id,
        "role": member.role,
        "status": member.status,
        "joinedAt": member.joined_at,
        "user": serialize_user(member.user),
    }


def serialize_media(media: Media) -> dict:
    return {
        "id": media.id,
        "url": absolute_media_url(media.url),
        "type": media.type,
        "caption": media.caption,
        "albumId": media.album_id,
        "postId": media.post_id,
        "createdAt": media.created_at,
    }


def _counts(db: Session, column, post_ids: list[str]) -> dict[str, int]:
    if not post_ids:
        return {}
    rows = (
        db.query(column, func.count())
        .filter(column.in_(post_ids))
        .group_by(column)
        .all()
    )
    return {post_id: count for post_id, count in rows}


def serialize_posts(db: Session, posts: list[Post], viewer: User) -> list[dict]:
    """
    Posts with counts and the viewer's own like/bookmark state,
    computed from the viewer's rows in four batched queries.
    """
    post_ids = [p.id for p in posts]

    like_counts = _counts(db, Like.post_id, post_ids)
    comment_counts = _counts(db, Comment.post_id, post_ids)

    liked = set()
    bookmarked = set()
    if post_ids:
        liked = {
            row.post_id
            for row in db.query(Like.post_id).filter(
                Like.user_id == viewer.id,
                Like.post_id.in_(post_ids),
            )
        }
        bookmarked = {
            row.post_id
            for row in db.query(Memory.post_id).filter(
                Memory.user_id == viewer.id,
                Memory.post_id.in_(post_ids),
            )
        }

    return [
        {
            "id": p.id,
            "familyId": p.family_id,
            "text": p.text,
            "createdAt": p.created_at,
            "updatedAt": p.updated_at,
            "user": serialize_user(p.author),
            "family": {"id": p.family.id, "name": p.family.name} if p.family else None,
            "media": [serialize_media(m) for m in p.media],
            "likesCount": like_counts.get(p.id, 0),
            "commentsCount": comment_counts.get(p.id, 0),
            "isLiked": p.id in liked,
            "isInMemory": p.id in bookmarked,
            "isAuthor": p.user_id == viewer.id,
        }
        for p in posts
    ]


def serialize_post(db: Session, post: Post, viewer: User) -> dict:
    return serialize_posts(db, [post], viewer)[0]


def serialize_comment(comment: Comment, viewer: User) -> dict:
    return {
        "id": comment.id,
        "postId": comment.post_id,
        "content": comment.content,
        "createdAt": comment.created_at,
        "updatedAt": comment.updated_at,
        "user": serialize_user(comment.author),
        "isAuthor": comment.user_id == viewer.id,
    }
