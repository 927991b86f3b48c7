import logging

from fastapi import Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fambook.auth.supabase_auth import get_current_principal
from fambook.database import get_db
from fambook.models.user import User

logger = logging.getLogger(__name__)


def resolve_user(db: Session, principal: dict) -> User:
    """
    Upsert-on-login: returns the user for the principal, creating it
    the first time the principal is seen. Existing rows are left as is.
    """
    user = db.query(User).filter(User.external_id == principal["id"]).first()
    if user:
        return user

    user = User(
        external_id=principal["id"],
        email=principal.get("email") or "",
        full_name=principal.get("full_name") or "",
        image_url=principal.get("image_url"),
        languages=[],
        interests=[],
        privacy_settings={},
    )
    db.add(user)

    try:
        db.commit()
    except IntegrityError:
        # A concurrent request created the same user first
        db.rollback()
        return db.query(User).filter(User.external_id == principal["id"]).one()

    db.refresh(user)
    logger.info("Created user %s for external id %s", user.id, user.external_id)
    return user


def get_current_user(
    principal: dict = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> User:
    return resolve_user(db, principal)
