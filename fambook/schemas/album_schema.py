from typing import Optional

from pydantic import Field

from fambook.config import settings
from fambook.schemas.base import CamelModel


class AlbumCreate(CamelModel):
    name: str = Field(min_length=2, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    family_ids: list[str] = Field(min_length=1)
    event_id: Optional[str] = None
    media_limit: int = Field(default=settings.DEFAULT_MEDIA_LIMIT, ge=1, le=settings.DEFAULT_MEDIA_LIMIT)


class AlbumUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    cover_image: Optional[str] = None


class MediaCaptionUpdate(CamelModel):
    caption: str = Field(min_length=1, max_length=500)
