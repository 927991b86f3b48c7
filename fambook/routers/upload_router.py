from typing import Optional

from fastapi import APIRouter, Depends

from fambook.core.identity import get_current_user
from fambook.models.user import User
from fambook.schemas.base import CamelModel
from fambook.storage import sign_upload
from fambook.utils.responses import ok

router = APIRouter(prefix="/upload", tags=["Uploads"])


class SignUploadRequest(CamelModel):
    filename: Optional[str] = None


@router.post("/sign")
def sign(
    payload: Optional[SignUploadRequest] = None,
    me: User = Depends(get_current_user),
):
    """Signed target the client uploads a post attachment to directly."""
    filename = payload.filename if payload else None
    return ok(sign_upload(f"uploads/{me.id}", filename), "Upload signed successfully")
