import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session, joinedload

from fambook.auth.supabase_auth import get_optional_principal
from fambook.core.access import APPROVED, approved_family_ids, shares_family
from fambook.core.identity import get_current_user, resolve_user
from fambook.core.privacy import (
    PRIVACY_DEFAULTS,
    TAB_VISIBILITY_KEY,
    Visibility,
    can_see,
    hidden_fields,
    merged_privacy,
    merged_tab_visibility,
    viewer_audience,
)
from fambook.core.serializers import serialize_posts, serialize_user
from fambook.database import get_db, transaction
from fambook.errors import AuthorizationError, NotFoundError, ValidationError
from fambook.models.album import Album
from fambook.models.education import Education
from fambook.models.family_member import FamilyMember
from fambook.models.life_event import LifeEvent
from fambook.models.memory import Memory
from fambook.models.post import Post
from fambook.models.user import User
from fambook.models.work_history import WorkHistory
from fambook.routers.life_events_router import serialize_life_event
from fambook.schemas.base import parse_payload
from fambook.schemas.user_schema import (
    BasicInfoUpdate,
    EducationCreate,
    EducationUpdate,
    InterestsUpdate,
    ProfileUpdate,
    TabVisibilityUpdate,
    WorkHistoryCreate,
    WorkHistoryUpdate,
)
from fambook.storage import PHOTO, StoredFile, delete_file, save_file, stored_uploads, validate_upload
from fambook.utils.dates import calculate_age, is_birthday
from fambook.utils.responses import created, ok, paginate
from fambook.utils.urls import absolute_media_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


# --------------------------------------------------
# HELPERS
# --------------------------------------------------
def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def require_self(me: User, user_id: str, message: str = "You can only edit your own profile"):
    if me.id != user_id:
        raise AuthorizationError(message)


def clean_list(values) -> list[str]:
    return list(dict.fromkeys(v.strip() for v in values if v and v.strip()))


def serialize_education(e: Education) -> dict:
    return {
        "id": e.id,
        "institution": e.institution,
        "degree": e.degree,
        "fieldOfStudy": e.field_of_study,
        "startYear": e.start_year,
        "endYear": e.end_year,
        "description": e.description,
    }


def serialize_work(w: WorkHistory) -> dict:
    return {
        "id": w.id,
        "company": w.company,
        "position": w.position,
        "startDate": w.start_date,
        "endDate": w.end_date,
        "currentlyWorking": w.currently_working,
        "location": w.location,
        "description": w.description,
    }


def section_visible(db: Session, me: User, owner: User, setting: str) -> bool:
    privacy = merged_privacy(owner.privacy_settings)
    return can_see(privacy[setting], viewer_audience(db, me, owner))


# --------------------------------------------------
# SESSION
# --------------------------------------------------
@router.get("/sync")
def sync_user(
    principal: Optional[dict] = Depends(get_optional_principal),
    db: Session = Depends(get_db),
):
    if principal is None:
        return ok({"isSynced": False}, "Not signed in")

    user = resolve_user(db, principal)
    return ok({"isSynced": True, "user": serialize_user(user)}, "User synced")


@router.get("/me")
def me_endpoint(me: User = Depends(get_current_user)):
    return ok(
        {
            "id": me.id,
            "fullName": me.full_name,
            "email": me.email,
            "imageUrl": absolute_media_url(me.avatar),
        },
        "User fetched successfully",
    )


# --------------------------------------------------
# PROFILE
# --------------------------------------------------
@router.get("/{user_id}/profile")
def get_profile(
    user_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    owner = get_user(db, user_id)
    audience = viewer_audience(db, me, owner)
    privacy = merged_privacy(owner.privacy_settings)
    is_self = owner.id == me.id

    memberships = (
        db.query(FamilyMember)
        .options(joinedload(FamilyMember.family))
        .filter(
            FamilyMember.user_id == owner.id,
            FamilyMember.status == APPROVED,
        )
    )
    if not is_self:
        memberships = memberships.filter(FamilyMember.family_id.in_(approved_family_ids(db, me.id)))

    today = datetime.utcnow().date()
    birth = owner.date_of_birth

    profile = {
        "id": owner.id,
        "fullName": owner.full_name,
        "firstName": owner.first_name,
        "lastName": owner.last_name,
        "imageUrl": absolute_media_url(owner.avatar),
        "bio": owner.bio,
        "dateOfBirth": birth,
        "age": calculate_age(birth, today) if birth else None,
        "isBirthday": is_birthday(birth, today) if birth else False,
        "birthPlace": owner.birth_place,
        "currentPlace": owner.current_place,
        "relationshipStatus": owner.relationship_status,
        "languages": owner.languages or [],
        "interests": owner.interests or [],
        "education": [serialize_education(e) for e in owner.education],
        "workHistory": [serialize_work(w) for w in owner.work_history],
        "familyMemberships": [
            {"familyId": m.family_id, "name": m.family.name, "role": m.role}
            for m in memberships
        ],
        "isSelf": is_self,
        "privacySettings": {k: v.value for k, v in privacy.items()},
        "tabVisibility": merged_tab_visibility(owner.privacy_settings),
    }

    if is_self:
        profile["email"] = owner.email

    for key in hidden_fields(privacy, audience):
        profile.pop(key, None)

    return ok(profile, "Profile fetched successfully")


@router.patch("/{user_id}/profile/update")
def update_profile(
    user_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_self(me, user_id)
    data = parse_payload(ProfileUpdate, payload)

    changes = data.model_dump(exclude_unset=True)
    if "languages" in changes:
        changes["languages"] = clean_list(changes["languages"] or [])

    with transaction(db):
        for field, value in changes.items():
            setattr(me, field, value.strip() if isinstance(value, str) else value)
        me.full_name = f"{me.first_name} {me.last_name}".strip()

    db.refresh(me)
    return ok(
        {
            "id": me.id,
            "fullName": me.full_name,
            "firstName": me.first_name,
            "lastName": me.last_name,
            "dateOfBirth": me.date_of_birth,
            "bio": me.bio,
            "currentPlace": me.current_place,
            "birthPlace": me.birth_place,
            "relationshipStatus": me.relationship_status,
            "languages": me.languages,
        },
        "Profile updated successfully",
    )


@router.patch("/{user_id}/basic-info")
def update_basic_info(
    user_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_self(me, user_id)
    data = parse_payload(BasicInfoUpdate, payload)

    with transaction(db):
        me.bio = data.bio
        me.birth_place = data.birth_place
        me.current_place = data.current_place
        me.relationship_status = data.relationship_status
        me.languages = clean_list(data.languages)

    db.refresh(me)
    return ok(
        {
            "bio": me.bio,
            "birthPlace": me.birth_place,
            "currentPlace": me.current_place,
            "relationshipStatus": me.relationship_status,
            "languages": me.languages,
        },
        "Basic info updated successfully",
    )


# --------------------------------------------------
# PRIVACY
# --------------------------------------------------
@router.patch("/{user_id}/profile/privacy")
def update_privacy(
    user_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_self(me, user_id)

    allowed = {v.value for v in Visibility}
    errors = []
    for key, value in payload.items():
        if key not in PRIVACY_DEFAULTS:
            errors.append({"field": key, "message": "Unknown privacy setting", "type": "unknown_field"})
        elif not isinstance(value, str) or value not in allowed:
            errors.append({"field": key, "message": f"Must be one of {sorted(allowed)}", "type": "enum"})
    if errors:
        raise ValidationError("Invalid privacy settings", errors=errors)

    # JSON column: assign a new dict so the change is tracked
    stored = dict(me.privacy_settings or {})
    stored.update(payload)

    with transaction(db):
        me.privacy_settings = stored

    merged = merged_privacy(stored)
    return ok({k: v.value for k, v in merged.items()}, "Privacy settings updated successfully")


@router.get("/{user_id}/profile/tab-visibility")
def get_tab_visibility(
    user_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    owner = get_user(db, user_id)
    return ok(merged_tab_visibility(owner.privacy_settings), "Tab visibility fetched successfully")


@router.patch("/{user_id}/profile/tab-visibility")
def update_tab_visibility(
    user_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_self(me, user_id)
    data = parse_payload(TabVisibilityUpdate, payload)

    stored = dict(me.privacy_settings or {})
    stored[TAB_VISIBILITY_KEY] = data.model_dump()

    with transaction(db):
        me.privacy_settings = stored

    return ok(merged_tab_visibility(stored), "Tab visibility updated successfully")


# --------------------------------------------------
# PROFILE PICTURE
# --------------------------------------------------
@router.post("/{user_id}/profile/upload-picture")
def upload_profile_picture(
    user_id: str,
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_self(me, user_id)

    if profile_image is None:
        raise ValidationError("No image provided")

    validate_upload(profile_image, (PHOTO,))
    previous = me.profile_image

    with stored_uploads() as stored:
        stored.append(StoredFile(url=save_file(f"profiles/{me.id}", profile_image), media_type=PHOTO))
        with transaction(db):
            me.profile_image = stored[0].url

    # Old picture goes only once the new one is recorded
    if previous and previous != me.profile_image:
        delete_file(previous)

    logger.info("Profile picture updated for %s", me.id)
    return ok({"imageUrl": absolute_media_url(me.profile_image)}, "Profile picture updated successfully")


# --------------------------------------------------
# EDUCATION
# --------------------------------------------------
def own_education(db: Session, me: User, education_id: str) -> Education:
    row = db.query(Education).filter(
        Education.id == education_id,
        Education.user_id == me.id,
    ).first()
    if not row:
        raise NotFoundError("Education entry not found")
    return row


@router.get("/{user_id}/education")
def list_education(
    user_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    owner = get_user(db, user_id)
    if not section_visible(db, me, owner, "showEducation"):
        return ok([], "Education is private")
    return ok([serialize_education(e) for e in owner.education], "Education fetched successfully")


@router.post("/{user_id}/education")
def add_education(
    user_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_self(me, user_id)
    data = parse_payload(EducationCreate, payload)

    with transaction(db):
        row = Education(user_id=me.id, **data.model_dump())
        db.add(row)

    db.refresh(row)
    return created(serialize_education(row), "Education added successfully")


@router.patch("/{user_id}/education/{education_id}")
def update_education(
    user_id: str,
    education_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_self(me, user_id)
    row = own_education(db, me, education_id)
    data = parse_payload(EducationUpdate, payload)

    changes = data.model_dump(exclude_unset=True)
    start = changes.get("start_year", row.start_year)
    end = changes.get("end_year", row.end_year)
    if end is not None and end < start:
        raise ValidationError("End year cannot be before start year")

    with transaction(db):
        for field, value in changes.items():
            setattr(row, field, value)

    db.refresh(row)
    return ok(serialize_education(row), "Education updated successfully")


@router.delete("/{user_id}/education/{education_id}")
def delete_education(
    user_id: str,
    education_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_self(me, user_id)
    row = own_education(db, me, education_id)

    with transaction(db):
        db.delete(row)

    return ok({"id": education_id}, "Education deleted successfully")


# --------------------------------------------------
# WORK HISTORY
# --------------------------------------------------
def own_work(db: Session, me: User, work_id: str) -> WorkHistory:
    row = db.query(WorkHistory).filter(
        WorkHistory.id == work_id,
        WorkHistory.user_id == me.id,
    ).first()
    if not row:
        raise NotFoundError("Work history entry not found")
    return row


def check_work_dates(start: date, end: Optional[date], currently_working: bool):
    if currently_working:
        return
    if end is not None and end < start:
        raise ValidationError("End date cannot be before start date")


@router.get("/{user_id}/work-history")
def list_work_history(
    user_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    owner = get_user(db, user_id)
    if not section_visible(db, me, owner, "showWork"):
        return ok([], "Work history is private")
    return ok([serialize_work(w) for w in owner.work_history], "Work history fetched successfully")


@router.post("/{user_id}/work-history")
def add_work_history(
    user_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_self(me, user_id)
    data = parse_payload(WorkHistoryCreate, payload)
    check_work_dates(data.start_date, data.end_date, data.currently_working)

    values = data.model_dump()
    if data.currently_working:
        values["end_date"] = None

    with transaction(db):
        row = WorkHistory(user_id=me.id, **values)
        db.add(row)

    db.refresh(row)
    return created(serialize_work(row), "Work history added successfully")


@router.patch("/{user_id}/work-history/{work_id}")
def update_work_history(
    user_id: str,
    work_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_self(me, user_id)
    row = own_work(db, me, work_id)
    data = parse_payload(WorkHistoryUpdate, payload)

    changes = data.model_dump(exclude_unset=True)
    currently_working = changes.get("currently_working", row.currently_working)
    if currently_working:
        changes["end_date"] = None
    check_work_dates(
        changes.get("start_date", row.start_date),
        changes.get("end_date", row.end_date),
        currently_working,
    )

    with transaction(db):
        for field, value in changes.items():
            setattr(row, field, value)

    db.refresh(row)
    return ok(serialize_work(row), "Work history updated successfully")


@router.delete("/{user_id}/work-history/{work_id}")
def delete_work_history(
    user_id: str,
    work_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_self(me, user_id)
    row = own_work(db, me, work_id)

    with transaction(db):
        db.delete(row)

    return ok({"id": work_id}, "Work history deleted successfully")


# --------------------------------------------------
# INTERESTS
# --------------------------------------------------
@router.get("/{user_id}/interests")
def get_interests(
    user_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    owner = get_user(db, user_id)
    if not section_visible(db, me, owner, "showInterests"):
        return ok({"interests": []}, "Interests are private")
    return ok({"interests": owner.interests or []}, "Interests fetched successfully")


@router.patch("/{user_id}/interests")
def update_interests(
    user_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_self(me, user_id)
    data = parse_payload(InterestsUpdate, payload)

    with transaction(db):
        me.interests = clean_list(data.interests)

    return ok({"interests": me.interests}, "Interests updated successfully")


# --------------------------------------------------
# TIMELINE, POSTS, MEMORIES
# --------------------------------------------------
@router.get("/{user_id}/life-events")
def list_life_events(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    owner = get_user(db, user_id)

    events = (
        db.query(LifeEvent)
        .filter(LifeEvent.user_id == owner.id)
        .order_by(LifeEvent.event_date.desc())
        .offset((page - 1) * limit)
        .limit(limit + 1)
        .all()
    )
    has_more = len(events) > limit
    events = events[:limit]

    # Newest year first, events inside a year stay newest first
    grouped: dict[int, list] = {}
    for event in events:
        grouped.setdefault(event.event_date.year, []).append(serialize_life_event(event))

    return ok(
        {
            "timeline": [{"year": year, "events": items} for year, items in grouped.items()],
            "pagination": {"page": page, "limit": limit, "hasMore": has_more},
            "isSelf": owner.id == me.id,
        },
        "Life events fetched successfully",
    )


@router.get("/{user_id}/posts")
def list_user_posts(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    owner = get_user(db, user_id)

    q = db.query(Post).filter(
        Post.user_id == owner.id,
        Post.family_id.in_(approved_family_ids(db, me.id)),
    )
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


@router.get("/{user_id}/memories")
def list_memories(
    user_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    owner = get_user(db, user_id)
    if not shares_family(db, me.id, owner.id):
        raise AuthorizationError("You can only view memories of your family members")

    visible = approved_family_ids(db, me.id)
    memories = (
        db.query(Memory)
        .filter(Memory.user_id == owner.id)
        .order_by(Memory.created_at.desc())
        .all()
    )

    post_ids = [m.post_id for m in memories if m.post_id]
    album_ids = [m.album_id for m in memories if m.album_id]

    posts = {}
    if post_ids:
        rows = db.query(Post).filter(Post.id.in_(post_ids), Post.family_id.in_(visible)).all()
        posts = {p["id"]: p for p in serialize_posts(db, rows, me)}

    albums = {}
    if album_ids:
        for album in db.query(Album).filter(Album.id.in_(album_ids), Album.family_id.in_(visible)):
            cover = album.cover_image or (album.media[-1].url if album.media else None)
            albums[album.id] = {
                "id": album.id,
                "name": album.name,
                "familyId": album.family_id,
                "coverImage": absolute_media_url(cover),
                "mediaCount": len(album.media),
            }

    out = []
    for m in memories:
        item = {"id": m.id, "createdAt": m.created_at}
        if m.post_id in posts:
            item.update({"type": "post", "post": posts[m.post_id]})
        elif m.album_id in albums:
            item.update({"type": "album", "album": albums[m.album_id]})
        else:
            continue
        out.append(item)

    return ok(out, "Memories fetched successfully")
