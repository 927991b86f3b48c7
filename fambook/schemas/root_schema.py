from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import Field, model_validator

from fambook.schemas.base import CamelModel


class RootCreate(CamelModel):
    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    family_id: str = Field(min_length=1)


# --------------------------------------------------
# TREE EDITOR SAVE
# --------------------------------------------------
class RootNodeIn(CamelModel):
    id: str = Field(min_length=1)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    date_of_birth: Optional[datetime] = None
    date_of_death: Optional[datetime] = None
    gender: Optional[Literal["MALE", "FEMALE", "OTHER"]] = None
    is_alive: bool = True
    birth_place: Optional[str] = None
    current_place: Optional[str] = None
    profile_image: Optional[str] = None
    biography: Optional[str] = None
    custom_fields: Optional[dict[str, Any]] = None
    linked_member_id: Optional[str] = None
    position_x: Optional[float] = None
    position_y: Optional[float] = None


class RootRelationIn(CamelModel):
    id: str = Field(min_length=1)
    from_node_id: str = Field(min_length=1)
    to_node_id: str = Field(min_length=1)
    relation_type: Literal["PARENT", "SPOUSE", "SIBLING"]
    marriage_date: Optional[datetime] = None
    divorce_date: Optional[datetime] = None
    is_active: bool = True

    @model_validator(mode="after")
    def no_self_relation(self):
        if self.from_node_id == self.to_node_id:
            raise ValueError("A node cannot be related to itself")
        return self


class RootSave(CamelModel):
    # None leaves that collection untouched
    nodes: Optional[list[RootNodeIn]] = None
    relations: Optional[list[RootRelationIn]] = None
