import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from fambook.core import notifications
from fambook.core.access import approved_family_ids, is_member, require_member
from fambook.core.identity import get_current_user
from fambook.core.serializers import serialize_media
from fambook.database import get_db, transaction
from fambook.errors import AuthorizationError, NotFoundError, ValidationError
from fambook.models.album import Album
from fambook.models.family import Family
from fambook.models.media import Media
from fambook.models.special_day import SpecialDay
from fambook.models.user import User
from fambook.schemas.album_schema import AlbumCreate, AlbumUpdate, MediaCaptionUpdate
from fambook.schemas.base import parse_payload
from fambook.storage import StoredFile, delete_file, delete_files, save_file, stored_uploads, validate_upload
from fambook.utils.responses import created, ok
from fambook.utils.urls import absolute_media_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/albums", tags=["Albums"])


# =====================================================================
# HELPERS
# =====================================================================

def get_album(db: Session, album_id: str) -> Album:
    album = db.query(Album).filter(Album.id == album_id).first()
    if not album:
        raise NotFoundError("Album not found")
    return album


def require_album_creator(db: Session, me: User, album: Album, action: str):
    """Albums are managed by the creator of their family."""
    family = db.query(Family).filter(Family.id == album.family_id).first()
    if family is None or family.created_by_id != me.id:
        raise AuthorizationError(f"Only the family admin can {action} this album")


def album_media(db: Session, album: Album, media_id: str) -> Media:
    media = db.query(Media).filter(
        Media.id == media_id,
        Media.album_id == album.id,
    ).first()
    if not media:
        raise NotFoundError("Media not found in this album")
    return media


def cover_of(album: Album) -> Optional[str]:
    if album.cover_image:
        return absolute_media_url(album.cover_image)
    if album.media:
        return absolute_media_url(album.media[-1].url)
    return None


def serialize_album(album: Album, me: User, with_media: bool = False) -> dict:
    data = {
        "id": album.id,
        "name": album.name,
        "description": album.description,
        "familyId": album.family_id,
        "eventId": album.event_id,
        "coverImage": cover_of(album),
        "mediaLimit": album.media_limit,
        "mediaCount": len(album.media),
        "createdById": album.created_by_id,
        "createdAt": album.created_at,
        "updatedAt": album.updated_at,
        "family": {"id": album.family.id, "name": album.family.name},
        "event": {"id": album.event.id, "title": album.event.title} if album.event else None,
        "isAdmin": album.family.created_by_id == me.id,
    }
    if with_media:
        data["media"] = [serialize_media(m) for m in album.media]
    return data


# =====================================================================
# LIST / CREATE
# =====================================================================

@router.get("")
def list_albums(
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    albums = (
        db.query(Album)
        .options(joinedload(Album.family), joinedload(Album.event), joinedload(Album.media))
        .filter(Album.family_id.in_(approved_family_ids(db, me.id)))
        .order_by(Album.created_at.desc())
        .all()
    )
    return ok([serialize_album(a, me) for a in albums], "Albums fetched successfully")


@router.post("")
def create_album(
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    requested = payload.get("familyIds") if isinstance(payload, dict) else None
    if not isinstance(requested, list):
        requested = []

    family_ids = []
    for family_id in dict.fromkeys(f for f in requested if isinstance(f, str)):
        if is_member(db, me.id, family_id):
            family_ids.append(family_id)
        else:
            logger.info("Skipping album for family %s: %s is not a member", family_id, me.id)

    if not family_ids:
        raise AuthorizationError("You are not a member of any of the selected families")

    data = parse_payload(AlbumCreate, payload)

    event = None
    if data.event_id:
        event = db.query(SpecialDay).filter(SpecialDay.id == data.event_id).first()
        if not event:
            raise NotFoundError("Event not found")

    families = db.query(Family).filter(Family.id.in_(family_ids)).all()

    albums = []
    with transaction(db):
        for family in families:
            album = Album(
                family_id=family.id,
                event_id=event.id if event and event.family_id == family.id else None,
                created_by_id=me.id,
                name=data.name.strip(),
                description=data.description,
                media_limit=data.media_limit,
            )
            db.add(album)
            albums.append(album)

            notifications.notify_family(
                db,
                family.id,
                me.id,
                notifications.NEW_ALBUM,
                f'{me.full_name} created a new album "{album.name}" in {family.name}',
            )

    for album in albums:
        db.refresh(album)

    logger.info("%d album(s) created by %s", len(albums), me.id)
    return created([serialize_album(a, me) for a in albums], "Album created successfully")


# =====================================================================
# SINGLE ALBUM
# =====================================================================

@router.get("/{album_id}")
def get_single_album(
    album_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    album = get_album(db, album_id)
    require_member(db, me, album.family_id)
    return ok(serialize_album(album, me, with_media=True), "Album fetched successfully")


@router.put("/{album_id}")
def update_album(
    album_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    album = get_album(db, album_id)
    require_album_creator(db, me, album, "update")

    data = parse_payload(AlbumUpdate, payload)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("Nothing to update")

    with transaction(db):
        for field, value in changes.items():
            setattr(album, field, value.strip() if field == "name" and value else value)

    db.refresh(album)
    return ok(serialize_album(album, me), "Album updated successfully")


@router.delete("/{album_id}")
def delete_album(
    album_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    album = get_album(db, album_id)
    require_album_creator(db, me, album, "delete")

    urls = [m.url for m in album.media]

    with transaction(db):
        db.delete(album)

    delete_files(urls)

    logger.info("Album %s deleted by %s", album_id, me.id)
    return ok({"id": album_id}, "Album deleted successfully")


# =====================================================================
# MEDIA
# =====================================================================

@router.post("/{album_id}/media")
def upload_album_media(
    album_id: str,
    files: Optional[List[UploadFile]] = File(None),
    captions: Optional[List[str]] = Form(None),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    """
    Stores a batch of photos/videos in an album.

    The whole batch is refused when it would overflow the album's media
    limit or when any file is invalid, before anything is stored. Files
    stored by this request are deleted again if the database write fails.
    """
    album = get_album(db, album_id)
    access = require_member(db, me, album.family_id)

    if not files:
        raise ValidationError("No files provided")

    existing = db.query(func.count(Media.id)).filter(Media.album_id == album.id).scalar()
    if existing + len(files) > album.media_limit:
        raise ValidationError(
            f"This album can hold {album.media_limit} items. "
            f"It already has {existing}, so {len(files)} more will not fit."
        )

    media_types = [validate_upload(f) for f in files]
    captions = captions or []

    with stored_uploads() as stored:
        for upload, media_type in zip(files, media_types):
            stored.append(StoredFile(
                url=save_file(f"albums/{album.id}", upload),
                media_type=media_type,
            ))

        with transaction(db):
            rows = []
            for index, item in enumerate(stored):
                caption = captions[index].strip() if index < len(captions) and captions[index] else None
                row = Media(album_id=album.id, url=item.url, type=item.media_type, caption=caption)
                db.add(row)
                rows.append(row)

            notifications.notify_family(
                db,
                access.family.id,
                me.id,
                notifications.NEW_ALBUM,
                f'{me.full_name} added {len(rows)} new items to "{album.name}"',
            )

    for row in rows:
        db.refresh(row)

    logger.info("%d file(s) added to album %s", len(rows), album.id)
    return created([serialize_media(m) for m in rows], "Media uploaded successfully")


@router.patch("/{album_id}/media/{media_id}")
def update_media_caption(
    album_id: str,
    media_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    album = get_album(db, album_id)
    require_member(db, me, album.family_id)
    media = album_media(db, album, media_id)

    data = parse_payload(MediaCaptionUpdate, payload)

    with transaction(db):
        media.caption = data.caption.strip()

    db.refresh(media)
    return ok(serialize_media(media), "Caption updated successfully")


@router.delete("/{album_id}/media/{media_id}")
def delete_media(
    album_id: str,
    media_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    album = get_album(db, album_id)
    require_member(db, me, album.family_id)
    media = album_media(db, album, media_id)

    url = media.url

    with transaction(db):
        if album.cover_image == url:
            album.cover_image = None
        db.delete(media)

    delete_file(url)

    return ok({"id": media_id}, "Media deleted successfully")
