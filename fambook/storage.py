import logging
import os
import shutil
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from fambook.config import settings
from fambook.errors import DependencyError, ValidationError
from fambook.supabase_client import get_supabase

logger = logging.getLogger(__name__)


PHOTO = "PHOTO"
VIDEO = "VIDEO"

LOCAL_URL_PREFIX = "/media/"


@dataclass
class StoredFile:
    url: str
    media_type: str


# ==========================================================
# VALIDATION
# ==========================================================
def detect_media_type(file: UploadFile) -> Optional[str]:
    content_type = (file.content_type or "").lower()
    if content_type.startswith("image/"):
        return PHOTO
    if content_type.startswith("video/"):
        return VIDEO
    return None


def file_size(file: UploadFile) -> int:
    file.file.seek(0, os.SEEK_END)
    size = file.file.tell()
    file.file.seek(0)
    return size


def validate_file_size(file: UploadFile):
    size = file_size(file)

    if size == 0:
        return False, f"{file.filename or 'File'} is empty."

    media_type = detect_media_type(file)

    if media_type == PHOTO and size > settings.MAX_IMAGE_SIZE:
        return False, "Image too large (max 5MB)."

    if media_type == VIDEO and size > settings.MAX_VIDEO_SIZE:
        return False, "Video too large (max 50MB)."

    return True, None


def validate_upload(file: UploadFile, allowed: tuple[str, ...] = (PHOTO, VIDEO)) -> str:
    """Returns the media type or raises a ValidationError."""
    media_type = detect_media_type(file)
    if media_type not in allowed:
        kinds = " or ".join(t.lower() for t in allowed)
        raise ValidationError(f"{file.filename or 'File'} must be a {kinds}")

    ok, message = validate_file_size(file)
    if not ok:
        raise ValidationError(message)

    return media_type


# ==========================================================
# EXTRACT SUPABASE STORAGE KEY
# ==========================================================
def extract_storage_key(url_or_path: str) -> str:
    """
    Converts Supabase public URL → storage key.
    """

    if not url_or_path:
        return ""

    if url_or_path.startswith("http"):
        marker = f"/storage/v1/object/public/{settings.SUPABASE_BUCKET}/"
        if marker in url_or_path:
            return url_or_path.split(marker)[1]

    return url_or_path.strip("/")


def _local_path(url: str) -> Optional[Path]:
    if not url.startswith(LOCAL_URL_PREFIX):
        return None
    return Path(settings.LOCAL_MEDIA_PATH) / url[len(LOCAL_URL_PREFIX):]


# ==========================================================
# SAVE FILE (LOCAL or SUPABASE)
# ==========================================================
def save_file(folder: str, file: UploadFile, filename: str | None = None) -> str:
    folder = folder.strip("/")

    if not filename:
        ext = os.path.splitext(file.filename or "")[1].lower()
        filename = f"{uuid.uuid4()}{ext}"

    # -----------------------------
    # LOCAL STORAGE
    # -----------------------------
    if settings.STORAGE_BACKEND == "local":
        folder_path = Path(settings.LOCAL_MEDIA_PATH) / folder
        try:
            folder_path.mkdir(parents=True, exist_ok=True)
            file_path = folder_path / filename

            file.file.seek(0)
            with open(file_path, "wb") as buffer:
                shutil.copyfileobj(file.file, buffer)
        except OSError as exc:
            raise DependencyError("Failed to store file", error=str(exc))

        rel = file_path.relative_to(settings.LOCAL_MEDIA_PATH)
        url = f"{LOCAL_URL_PREFIX}{rel}".replace("\\", "/")
        logger.info("Stored %s", url)
        return url

    # -----------------------------
    # SUPABASE STORAGE
    # -----------------------------
    elif settings.STORAGE_BACKEND == "supabase":
        storage_key = f"{folder}/{filename}"

        file.file.seek(0)
        contents = file.file.read()

        bucket = get_supabase().storage.from_(settings.SUPABASE_BUCKET)
        try:
            res = bucket.upload(
                storage_key,
                contents,
                {
                    "content-type": file.content_type or "application/octet-stream",
                    "upsert": "true",
                },
            )
        except Exception as exc:
            raise DependencyError("Failed to upload file", error=str(exc))

        if not res:
            raise DependencyError("Failed to upload file", error="Supabase upload returned no response")

        logger.info("Supabase upload OK: %s", storage_key)

        return bucket.get_public_url(storage_key)

    else:
        raise DependencyError("Invalid STORAGE_BACKEND", error=settings.STORAGE_BACKEND)


# ==========================================================
# DELETE FILE (LOCAL or SUPABASE)
# ==========================================================
def delete_file(path: str):
    if not path:
        return

    # -----------------------------
    # LOCAL DELETE
    # -----------------------------
    if settings.STORAGE_BACKEND == "local":
        fs_path = _local_path(path)
        if fs_path is None or not fs_path.exists():
            return
        try:
            fs_path.unlink()
            logger.info("Deleted %s", path)
        except OSError as exc:
            logger.warning("Local delete failed for %s: %s", path, exc)

    # -----------------------------
    # SUPABASE DELETE
    # -----------------------------
    elif settings.STORAGE_BACKEND == "supabase":
        key = extract_storage_key(path)
        try:
            get_supabase().storage.from_(settings.SUPABASE_BUCKET).remove([key])
            logger.info("Supabase delete OK: %s", key)
        except Exception as exc:
            logger.warning("Supabase delete failed for %s: %s", key, exc)


def delete_files(paths):
    for path in paths:
        delete_file(path)


# ==========================================================
# COMPENSATION
# ==========================================================
@contextmanager
def stored_uploads():
    """
    Collects the URLs of files stored inside the block. If the block
    raises, every one of them is deleted again before re-raising.

        with stored_uploads() as stored:
            stored.append(StoredFile(save_file(folder, f), media_type))
            ...commit...
    """
    stored: list[StoredFile] = []
    try:
        yield stored
    except Exception:
        if stored:
            logger.warning("Rolling back %d stored file(s)", len(stored))
            delete_files(s.url for s in stored)
        raise


# ==========================================================
# SIGNED DIRECT UPLOADS
# ==========================================================
def sign_upload(folder: str, filename: str | None = None) -> dict:
    if settings.STORAGE_BACKEND != "supabase":
        raise DependencyError("Signed uploads need the supabase storage backend")

    ext = os.path.splitext(filename or "")[1].lower()
    path = f"{folder.strip('/')}/{uuid.uuid4()}{ext}"

    try:
        signed = get_supabase().storage.from_(settings.SUPABASE_BUCKET).create_signed_upload_url(path)
    except Exception as exc:
        raise DependencyError("Failed to sign upload request", error=str(exc))

    return {
        "signedUrl": signed.get("signed_url") or signed.get("signedUrl"),
        "token": signed.get("token"),
        "path": signed.get("path", path),
    }
