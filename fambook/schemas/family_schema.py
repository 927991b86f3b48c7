from pydantic import Field
from typing import Literal, Optional

from fambook.schemas.base import CamelModel


DEFAULT_FAMILY_DESCRIPTION = "We are a happy family!"


# --------------------------------------------------
# CREATE / JOIN
# --------------------------------------------------
class FamilyCreate(CamelModel):
    name: str = Field(min_length=2, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)


class FamilyJoin(CamelModel):
    token: str = Field(min_length=1, max_length=12)


# --------------------------------------------------
# UPDATE
# --------------------------------------------------
class FamilyUpdate(CamelModel):
    name: str = Field(min_length=3, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)


# --------------------------------------------------
# JOIN REQUESTS
# --------------------------------------------------
class JoinRequestDecision(CamelModel):
    member_id: str = Field(min_length=1)
    action: Literal["APPROVED", "REJECTED"]
