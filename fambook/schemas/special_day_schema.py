from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from fambook.schemas.base import CamelModel

SpecialDayType = Literal["BIRTHDAY", "ANNIVERSARY", "WEDDING", "GRADUATION", "HOLIDAY", "OTHER"]


class SpecialDayCreate(CamelModel):
    title: str = Field(min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    date: datetime
    time: Optional[str] = None
    venue: Optional[str] = Field(default=None, max_length=200)
    type: SpecialDayType
    family_id: str = Field(min_length=1)


class SpecialDayUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    date: Optional[datetime] = None
    time: Optional[str] = None
    venue: Optional[str] = Field(default=None, max_length=200)
    type: Optional[SpecialDayType] = None
