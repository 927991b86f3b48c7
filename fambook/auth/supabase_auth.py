import logging
from typing import Optional

from fastapi import Header
from jose import jwt, JWTError

from fambook.config import settings
from fambook.errors import AuthenticationError

logger = logging.getLogger(__name__)


def decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except JWTError as exc:
        logger.info("Rejected token: %s", exc)
        raise AuthenticationError("Invalid token")

    if not payload.get("sub"):
        raise AuthenticationError("Invalid token")

    return payload


def principal_from_payload(payload: dict) -> dict:
    """
    Normalises Supabase claims into the principal the identity
    resolver understands: id, email, full_name, image_url.
    """
    metadata = payload.get("user_metadata") or {}
    email = payload.get("email") or metadata.get("email") or ""

    full_name = (
        metadata.get("full_name")
        or metadata.get("name")
        or " ".join(
            part for part in (metadata.get("first_name"), metadata.get("last_name")) if part
        )
        or email.split("@")[0]
    )

    return {
        "id": payload["sub"],
        "email": email,
        "full_name": full_name,
        "image_url": metadata.get("avatar_url") or metadata.get("picture"),
    }


def get_current_principal(authorization: str = Header(None)) -> dict:
    if not authorization:
        raise AuthenticationError("Missing auth header")

    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid auth header")

    token = authorization.replace("Bearer ", "", 1).strip()
    return principal_from_payload(decode_token(token))


def get_optional_principal(authorization: str = Header(None)) -> Optional[dict]:
    try:
        return get_current_principal(authorization)
    except AuthenticationError:
        return None
