import logging
from typing import Literal, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy import exists
from sqlalchemy.orm import Session, joinedload

from fambook.core import notifications
from fambook.core.access import approved_family_ids, is_member, require_member
from fambook.core.identity import get_current_user
from fambook.core.serializers import serialize_comment, serialize_post, serialize_posts, serialize_user
from fambook.database import get_db, transaction
from fambook.errors import AuthorizationError, NotFoundError, ValidationError
from fambook.models.comment import Comment
from fambook.models.like import Like
from fambook.models.media import Media
from fambook.models.post import Post
from fambook.models.user import User
from fambook.schemas.base import parse_payload
from fambook.schemas.post_schema import CommentCreate, PostUpdate
from fambook.storage import PHOTO, VIDEO, delete_files
from fambook.utils.responses import created, ok, paginate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Posts"])

LIKES_PAGE_SIZE = 20
COMMENTS_PAGE_SIZE = 10

MEDIA_FILTERS = {"photos": PHOTO, "videos": VIDEO}


def get_post(db: Session, post_id: str) -> Post:
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise NotFoundError("Post not found")
    return post


def post_for_member(db: Session, me: User, post_id: str) -> Post:
    post = get_post(db, post_id)
    require_member(db, me, post.family_id, "You are not a member of this post's family")
    return post


def next_page(page: int, per_page: int, total: int) -> Optional[int]:
    return page + 1 if page * per_page < total else None


def escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ==========================================================
# FEED
# ==========================================================
@router.get("/feed")
def feed(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    search: Optional[str] = None,
    filter: Literal["all", "photos", "videos"] = "all",
    sort_order: Literal["newest", "oldest"] = Query("newest", alias="sortOrder"),
    families: Optional[str] = None,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    if families and not is_member(db, me.id, families):
        raise AuthorizationError("You are not a member of this family")

    q = db.query(Post).filter(Post.family_id.in_(approved_family_ids(db, me.id)))

    if families:
        q = q.filter(Post.family_id == families)

    if search and search.strip():
        # Wildcards in the search text match literally
        term = escape_like(search.strip())
        q = q.join(User, User.id == Post.user_id).filter(
            User.full_name.ilike(f"%{term}%", escape="\\")
        )

    if filter in MEDIA_FILTERS:
        q = q.filter(
            exists().where(
                Media.post_id == Post.id,
                Media.type == MEDIA_FILTERS[filter],
            )
        )

    total = q.count()

    order = Post.created_at.asc() if sort_order == "oldest" else Post.created_at.desc()
    posts = (
        q.options(joinedload(Post.media), joinedload(Post.family))
        .order_by(order)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return ok(
        {
            "posts": serialize_posts(db, posts, me),
            "pagination": paginate(page, limit, total),
        },
        "Feed fetched successfully",
    )


# ==========================================================
# SINGLE POST
# ==========================================================
@router.get("/posts/{post_id}")
def get_single_post(
    post_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    post = post_for_member(db, me, post_id)
    return ok(serialize_post(db, post, me), "Post fetched successfully")


@router.put("/posts/{post_id}")
def update_post(
    post_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    post = get_post(db, post_id)
    if post.user_id != me.id:
        raise AuthorizationError("You can only edit your own posts")

    data = parse_payload(PostUpdate, payload)

    text = post.text
    if "text" in data.model_fields_set:
        text = (data.text or "").strip() or None

    removed = []
    with transaction(db):
        post.text = text

        if data.media is not None:
            keep = {m.url for m in data.media}
            current = {m.url for m in post.media}

            for media in list(post.media):
                if media.url not in keep:
                    removed.append(media.url)
                    post.media.remove(media)

            for item in data.media:
                if item.url not in current:
                    post.media.append(Media(url=item.url, type=item.type))

        if not post.text and not post.media:
            raise ValidationError("A post needs text or media")

    delete_files(removed)

    db.refresh(post)
    return ok(serialize_post(db, post, me), "Post updated successfully")


@router.delete("/posts/{post_id}")
def delete_post(
    post_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    post = get_post(db, post_id)
    if post.user_id != me.id:
        raise AuthorizationError("You can only delete your own posts")

    urls = [m.url for m in post.media]

    with transaction(db):
        db.delete(post)

    delete_files(urls)

    logger.info("Post %s deleted by %s", post_id, me.id)
    return ok({"id": post_id}, "Post deleted successfully")


# ==========================================================
# LIKES
# ==========================================================
@router.post("/posts/{post_id}/like")
def toggle_like(
    post_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    post = post_for_member(db, me, post_id)

    with transaction(db):
        existing = db.query(Like).filter(
            Like.post_id == post.id,
            Like.user_id == me.id,
        ).first()

        if existing:
            db.delete(existing)
            is_liked = False
        else:
            db.add(Like(post_id=post.id, user_id=me.id))
            notifications.notify_author(
                db,
                post.user_id,
                me.id,
                notifications.NEW_LIKE,
                f"{me.full_name} liked your post",
            )
            is_liked = True

    likes_count = db.query(Like).filter(Like.post_id == post.id).count()

    return ok(
        {"isLiked": is_liked, "likesCount": likes_count},
        "Post liked" if is_liked else "Post unliked",
    )


@router.get("/posts/{post_id}/likes")
def list_likes(
    post_id: str,
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    post = post_for_member(db, me, post_id)

    q = db.query(Like).filter(Like.post_id == post.id)
    total = q.count()
    likes = (
        q.order_by(Like.created_at.desc())
        .offset((page - 1) * LIKES_PAGE_SIZE)
        .limit(LIKES_PAGE_SIZE)
        .all()
    )

    return ok(
        {
            "likers": [serialize_user(like.user) for like in likes],
            "nextPage": next_page(page, LIKES_PAGE_SIZE, total),
            "totalLikes": total,
            "currentPage": page,
        },
        "Likes fetched successfully",
    )


# ==========================================================
# COMMENTS
# ==========================================================
@router.post("/posts/{post_id}/comments")
def add_comment(
    post_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    post = post_for_member(db, me, post_id)
    data = parse_payload(CommentCreate, payload)

    with transaction(db):
        comment = Comment(post_id=post.id, user_id=me.id, content=data.content.strip())
        db.add(comment)
        notifications.notify_author(
            db,
            post.user_id,
            me.id,
            notifications.NEW_COMMENT,
            f"{me.full_name} commented on your post",
        )

    db.refresh(comment)
    return created(serialize_comment(comment, me), "Comment added successfully")


@router.get("/posts/{post_id}/comments")
def list_comments(
    post_id: str,
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    post = post_for_member(db, me, post_id)

    q = db.query(Comment).filter(Comment.post_id == post.id)
    total = q.count()
    comments = (
        q.order_by(Comment.created_at.asc())
        .offset((page - 1) * COMMENTS_PAGE_SIZE)
        .limit(COMMENTS_PAGE_SIZE)
        .all()
    )

    return ok(
        {
            "comments": [serialize_comment(c, me) for c in comments],
            "nextPage": next_page(page, COMMENTS_PAGE_SIZE, total),
            "totalComments": total,
            "currentPage": page,
        },
        "Comments fetched successfully",
    )
