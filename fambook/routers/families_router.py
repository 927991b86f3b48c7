import logging
import secrets
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy import case, func
from sqlalchemy.orm import Session, joinedload

from fambook.config import settings
from fambook.core import notifications
from fambook.core.access import (
    ADMIN,
    APPROVED,
    MEMBER,
    PENDING,
    admin_user_ids,
    find_membership,
    require_admin,
    require_creator,
    require_member,
)
from fambook.core.identity import get_current_user
from fambook.core.serializers import serialize_member, serialize_posts, serialize_user
from fambook.database import get_db, transaction
from fambook.errors import NotFoundError, ValidationError
from fambook.models.album import Album
from fambook.models.family import Family
from fambook.models.family_member import FamilyMember
from fambook.models.family_root import FamilyRoot
from fambook.models.media import Media
from fambook.models.post import Post
from fambook.models.root_node import RootNode
from fambook.models.special_day import SpecialDay
from fambook.models.user import User
from fambook.schemas.base import parse_payload
from fambook.schemas.family_schema import (
    DEFAULT_FAMILY_DESCRIPTION,
    FamilyCreate,
    FamilyJoin,
    FamilyUpdate,
    JoinRequestDecision,
)
from fambook.schemas.post_schema import PostCreate
from fambook.storage import delete_files
from fambook.utils.dates import month_window
from fambook.utils.responses import created, no_content, ok, paginate
from fambook.utils.urls import absolute_media_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/families", tags=["Families"])


# --------------------------------------------------
# HELPERS
# --------------------------------------------------
def new_join_token() -> str:
    # 6 random bytes -> 12 hex chars
    return secrets.token_hex(6)


def approved_members(db: Session, family_id: str):
    # ADMIN sorts before MEMBER, then oldest first
    role_order = case((FamilyMember.role == ADMIN, 0), else_=1)
    return (
        db.query(FamilyMember)
        .filter(
            FamilyMember.family_id == family_id,
            FamilyMember.status == APPROVED,
        )
        .order_by(role_order, FamilyMember.joined_at.asc())
    )


def pending_count(db: Session, family_id: str) -> int:
    return db.query(FamilyMember).filter(
        FamilyMember.family_id == family_id,
        FamilyMember.status == PENDING,
    ).count()


def serialize_family(family: Family) -> dict:
    return {
        "id": family.id,
        "name": family.name,
        "description": family.description,
        "joinToken": family.join_token,
        "createdById": family.created_by_id,
        "createdAt": family.created_at,
        "updatedAt": family.updated_at,
    }


# --------------------------------------------------
# CREATE FAMILY
# --------------------------------------------------
@router.post("/create")
def create_family(
    payload: FamilyCreate,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    name = payload.name.strip()

    # Check-then-insert; two concurrent creates can both pass
    duplicate = (
        db.query(Family)
        .join(FamilyMember, FamilyMember.family_id == Family.id)
        .filter(FamilyMember.user_id == me.id, Family.name == name)
        .first()
    )
    if duplicate:
        raise ValidationError("You already have a family with this name")

    with transaction(db):
        family = Family(
            name=name,
            description=payload.description or DEFAULT_FAMILY_DESCRIPTION,
            join_token=new_join_token(),
            created_by_id=me.id,
        )
        db.add(family)
        db.flush()

        member = FamilyMember(
            family_id=family.id,
            user_id=me.id,
            role=ADMIN,
            status=APPROVED,
        )
        db.add(member)

        notifications.notify(
            db,
            [me.id],
            notifications.NEW_ALBUM,
            f'You\'ve successfully created the family "{family.name}"!',
        )

    db.refresh(family)
    logger.info("Family %s created by %s", family.id, me.id)

    return created(
        {
            "familyId": family.id,
            "joinToken": family.join_token,
            "name": family.name,
            "description": family.description,
            "members": [serialize_member(m) for m in family.members],
        },
        "Family created successfully",
    )


# --------------------------------------------------
# JOIN BY TOKEN
# --------------------------------------------------
@router.post("/join")
def join_family(
    payload: FamilyJoin,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    family = db.query(Family).filter(Family.join_token == payload.token.strip()).first()
    if not family:
        raise NotFoundError("Invalid invite code")

    # Any status counts, including PENDING and REJECTED
    if find_membership(db, family.id, me.id):
        raise ValidationError("You are already a member of this family")

    admin_ids = [uid for uid in admin_user_ids(db, family) if uid != me.id]

    with transaction(db):
        member = FamilyMember(
            family_id=family.id,
            user_id=me.id,
            role=MEMBER,
            status=PENDING,
        )
        db.add(member)
        notifications.notify_join_request(db, family, me)

    db.refresh(member)

    return created(
        {
            "familyId": family.id,
            "member": serialize_member(member),
            "status": PENDING,
            "admins": len(admin_ids),
        },
        "Join request sent successfully",
    )


# --------------------------------------------------
# LIST MY FAMILIES
# --------------------------------------------------
@router.get("")
def my_families(
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    rows = (
        db.query(Family, FamilyMember)
        .join(FamilyMember, FamilyMember.family_id == Family.id)
        .filter(
            FamilyMember.user_id == me.id,
            FamilyMember.status.in_([APPROVED, PENDING]),
        )
        .order_by(Family.created_at.desc())
        .all()
    )

    out = []
    for family, membership in rows:
        members = approved_members(db, family.id).all()
        is_admin = family.created_by_id == me.id or (
            membership.status == APPROVED and membership.role == ADMIN
        )

        item = serialize_family(family)
        item.update({
            "members": [serialize_member(m) for m in members],
            "memberCount": len(members),
            "isAdmin": is_admin,
            "userMembershipStatus": membership.status,
            "pendingRequestsCount": pending_count(db, family.id) if is_admin else 0,
        })
        out.append(item)

    return ok(out, "Families fetched successfully")


# --------------------------------------------------
# FAMILY DETAIL
# --------------------------------------------------
@router.get("/{family_id}")
def get_family_detail(
    family_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    access = require_member(db, me, family_id)
    family = access.family

    members = approved_members(db, family.id).all()

    data = serialize_family(family)
    data.update({
        "members": [serialize_member(m) for m in members],
        "memberCount": len(members),
        "pendingRequestsCount": pending_count(db, family.id),
        "currentUserId": me.id,
        "isAdmin": access.is_admin,
        "createdBy": serialize_user(family.created_by),
    })
    return ok(data, "Family fetched successfully")


@router.put("/{family_id}")
def update_family(
    family_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    access = require_creator(db, me, family_id, "Only the family creator can update this family")
    data = parse_payload(FamilyUpdate, payload)

    family = access.family
    family.name = data.name.strip()
    if "description" in data.model_fields_set:
        family.description = data.description

    db.commit()
    db.refresh(family)

    return ok(serialize_family(family), "Family updated successfully")


@router.delete("/{family_id}")
def delete_family(
    family_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    access = require_creator(db, me, family_id, "Only the family creator can delete this family")

    urls = [
        row.url
        for row in db.query(Media.url)
        .outerjoin(Post, Post.id == Media.post_id)
        .outerjoin(Album, Album.id == Media.album_id)
        .filter((Post.family_id == family_id) | (Album.family_id == family_id))
    ]

    with transaction(db):
        db.delete(access.family)

    # Files go only once the rows are gone
    delete_files(urls)

    logger.info("Family %s deleted by %s", family_id, me.id)
    return no_content()


# --------------------------------------------------
# MEMBERS
# --------------------------------------------------
@router.get("/{family_id}/members")
def list_members(
    family_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_member(db, me, family_id)

    q = approved_members(db, family_id)
    total = q.count()
    members = q.offset((page - 1) * limit).limit(limit).all()

    return ok(
        {
            "members": [serialize_member(m) for m in members],
            "pagination": paginate(page, limit, total),
        },
        "Members fetched successfully",
    )


@router.get("/{family_id}/members/{member_id}/user")
def member_user(
    family_id: str,
    member_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_member(db, me, family_id)

    member = db.query(FamilyMember).filter(
        FamilyMember.id == member_id,
        FamilyMember.family_id == family_id,
    ).first()
    if not member:
        raise NotFoundError("Member not found")

    return ok(serialize_user(member.user), "User fetched successfully")


# --------------------------------------------------
# JOIN REQUESTS (ADMIN ONLY)
# --------------------------------------------------
@router.get("/{family_id}/requests")
def list_join_requests(
    family_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_admin(db, me, family_id, "Only admins can view join requests")

    pending = (
        db.query(FamilyMember)
        .filter(
            FamilyMember.family_id == family_id,
            FamilyMember.status == PENDING,
        )
        .order_by(FamilyMember.joined_at.desc())
        .all()
    )
    return ok([serialize_member(m) for m in pending], "Join requests fetched successfully")


@router.post("/{family_id}/requests")
def decide_join_request(
    family_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    access = require_admin(db, me, family_id, "Only admins can handle join requests")
    data = parse_payload(JoinRequestDecision, payload)
    family = access.family

    member = db.query(FamilyMember).filter(
        FamilyMember.id == data.member_id,
        FamilyMember.family_id == family.id,
        FamilyMember.status == PENDING,
    ).first()
    if not member:
        raise NotFoundError("Join request not found")

    requester = member.user

    with transaction(db):
        if data.action == "REJECTED":
            db.delete(member)
            notifications.notify(
                db,
                [requester.id],
                notifications.REQUEST_REJECTED,
                f'Your request to join "{family.name}" has been rejected.',
            )
        else:
            # Fan out before the flip so the new member is not a recipient
            notifications.notify_family(
                db,
                family.id,
                me.id,
                notifications.NEW_MEMBER,
                f'{requester.full_name} has joined "{family.name}"!',
            )
            member.status = APPROVED
            notifications.notify(
                db,
                [requester.id],
                notifications.REQUEST_APPROVED,
                f'Your request to join "{family.name}" has been approved!',
            )

    message = "Request approved" if data.action == APPROVED else "Request rejected"
    return ok({"memberId": data.member_id, "status": data.action}, message)


# --------------------------------------------------
# STATS
# --------------------------------------------------
@router.get("/{family_id}/stats")
def family_stats(
    family_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_member(db, me, family_id)

    start, end = month_window(datetime.utcnow())

    def used(model, column):
        return db.query(func.count(model.id)).filter(
            model.family_id == family_id,
            column >= start,
            column < end,
        ).scalar()

    member_count = db.query(FamilyMember).filter(
        FamilyMember.family_id == family_id,
        FamilyMember.status == APPROVED,
    ).count()

    return ok(
        {
            "memberCount": member_count,
            "posts": {"used": used(Post, Post.created_at), "limit": settings.POST_LIMIT},
            "albums": {"used": used(Album, Album.created_at), "limit": settings.ALBUM_LIMIT},
            "events": {"used": used(SpecialDay, SpecialDay.created_at), "limit": settings.EVENT_LIMIT},
            "resetDate": end,
        },
        "Stats fetched successfully",
    )


# --------------------------------------------------
# UNLINKED MEMBERS (for the tree editor)
# --------------------------------------------------
@router.get("/{family_id}/unlinked-members")
def unlinked_members(
    family_id: str,
    include_linked_member: Optional[str] = Query(None, alias="includeLinkedMember"),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_member(db, me, family_id)

    linked_ids = {
        row.linked_member_id
        for row in db.query(RootNode.linked_member_id)
        .join(FamilyRoot, FamilyRoot.id == RootNode.root_id)
        .filter(
            FamilyRoot.family_id == family_id,
            RootNode.linked_member_id.isnot(None),
        )
    }
    linked_ids.discard(include_linked_member)

    members = approved_members(db, family_id).all()

    return ok(
        [
            {
                "id": m.id,
                "userId": m.user_id,
                "fullName": m.user.full_name,
                "imageUrl": absolute_media_url(m.user.avatar),
            }
            for m in members
            if m.id not in linked_ids
        ],
        "Unlinked members fetched successfully",
    )


# --------------------------------------------------
# FAMILY POSTS
# --------------------------------------------------
@router.get("/{family_id}/posts")
def list_family_posts(
    family_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_member(db, me, family_id)

    q = db.query(Post).filter(Post.family_id == family_id)
    total = q.count()
    posts = (
        q.options(joinedload(Post.media), joinedload(Post.family))
        .order_by(Post.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return ok(
        {
            "posts": serialize_posts(db, posts, me),
            "pagination": paginate(page, limit, total),
        },
        "Posts fetched successfully",
    )


@router.post("/{family_id}/posts")
def create_family_post(
    family_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_member(db, me, family_id)
    data = parse_payload(PostCreate, payload)

    with transaction(db):
        post = Post(
            family_id=family_id,
            user_id=me.id,
            text=(data.text or "").strip() or None,
        )
        db.add(post)
        db.flush()

        for item in data.media:
            db.add(Media(post_id=post.id, url=item.url, type=item.type))

        notifications.notify_family(
            db,
            family_id,
            me.id,
            notifications.NEW_POST,
            f"{me.full_name} shared a new post in your family",
        )

    db.refresh(post)
    return created(serialize_posts(db, [post], me)[0], "Post created successfully")
