from typing import Literal, Optional

from pydantic import Field, model_validator

from fambook.schemas.base import CamelModel


class MediaRef(CamelModel):
    """Media already uploaded straight to storage by the client."""

    url: str = Field(min_length=1)
    type: Literal["PHOTO", "VIDEO"]


class PostCreate(CamelModel):
    text: Optional[str] = Field(default=None, max_length=5000)
    media: list[MediaRef] = []

    @model_validator(mode="after")
    def text_or_media(self):
        if not (self.text or "").strip() and not self.media:
            raise ValueError("A post needs text or media")
        return self


class PostUpdate(CamelModel):
    text: Optional[str] = Field(default=None, max_length=5000)
    media: Optional[list[MediaRef]] = None


class CommentCreate(CamelModel):
    content: str = Field(min_length=1, max_length=500)


class CommentUpdate(CamelModel):
    content: str = Field(min_length=1, max_length=1000)
