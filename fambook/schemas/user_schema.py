from datetime import date, datetime
from typing import Optional

from pydantic import Field, model_validator

from fambook.schemas.base import CamelModel


# --------------------------------------------------
# PROFILE
# --------------------------------------------------
class ProfileUpdate(CamelModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    date_of_birth: Optional[date] = None
    bio: Optional[str] = Field(default=None, max_length=500)
    current_place: Optional[str] = Field(default=None, max_length=100)
    birth_place: Optional[str] = Field(default=None, max_length=100)
    relationship_status: Optional[str] = None
    languages: Optional[list[str]] = None


class BasicInfoUpdate(CamelModel):
    bio: Optional[str] = None
    birth_place: Optional[str] = None
    current_place: Optional[str] = None
    relationship_status: Optional[str] = None
    languages: list[str]


class TabVisibilityUpdate(CamelModel):
    overview: str
    memories: str
    timeline: str
    details: str
    posts: str


class InterestsUpdate(CamelModel):
    interests: list[str]


# --------------------------------------------------
# EDUCATION
# --------------------------------------------------
class EducationCreate(CamelModel):
    institution: str = Field(min_length=1)
    degree: str = Field(min_length=1)
    field_of_study: Optional[str] = None
    start_year: int = Field(ge=1900)
    end_year: Optional[int] = Field(default=None, ge=1900)
    description: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def ordered_years(self):
        if self.end_year is not None and self.end_year < self.start_year:
            raise ValueError("End year cannot be before start year")
        return self


class EducationUpdate(CamelModel):
    institution: Optional[str] = Field(default=None, min_length=1)
    degree: Optional[str] = Field(default=None, min_length=1)
    field_of_study: Optional[str] = None
    start_year: Optional[int] = Field(default=None, ge=1900)
    end_year: Optional[int] = Field(default=None, ge=1900)
    description: Optional[str] = Field(default=None, max_length=500)


# --------------------------------------------------
# WORK HISTORY
# --------------------------------------------------
class WorkHistoryCreate(CamelModel):
    company: str = Field(min_length=1)
    position: str = Field(min_length=1)
    start_date: date
    end_date: Optional[date] = None
    currently_working: bool = False
    location: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=500)


class WorkHistoryUpdate(CamelModel):
    company: Optional[str] = Field(default=None, min_length=1)
    position: Optional[str] = Field(default=None, min_length=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    currently_working: Optional[bool] = None
    location: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=500)


# --------------------------------------------------
# LIFE EVENTS
# --------------------------------------------------
class LifeEventCreate(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    event_date: datetime
    event_type: str = Field(min_length=1)
    location: Optional[str] = None


class LifeEventUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    event_date: Optional[datetime] = None
    event_type: Optional[str] = Field(default=None, min_length=1)
    location: Optional[str] = None
