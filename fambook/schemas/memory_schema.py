from typing import Optional

from pydantic import model_validator

from fambook.schemas.base import CamelModel


class MemoryCreate(CamelModel):
    album_id: Optional[str] = None
    post_id: Optional[str] = None

    @model_validator(mode="after")
    def exactly_one_target(self):
        if bool(self.album_id) == bool(self.post_id):
            raise ValueError("Provide exactly one of albumId or postId")
        return self
