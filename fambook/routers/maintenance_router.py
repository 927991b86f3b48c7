import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fambook.config import settings
from fambook.core.identity import get_current_user
from fambook.database import get_db, transaction
from fambook.errors import AuthorizationError
from fambook.models.album import Album
from fambook.models.comment import Comment
from fambook.models.education import Education
from fambook.models.family import Family
from fambook.models.family_member import FamilyMember
from fambook.models.family_root import FamilyRoot
from fambook.models.life_event import LifeEvent
from fambook.models.like import Like
from fambook.models.media import Media
from fambook.models.memory import Memory
from fambook.models.notification import Notification
from fambook.models.post import Post
from fambook.models.root_node import RootNode
from fambook.models.root_relation import RootRelation
from fambook.models.special_day import SpecialDay
from fambook.models.user import User
from fambook.models.work_history import WorkHistory
from fambook.utils.responses import ok

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Maintenance"])

# Children before parents
WIPE_ORDER = (
    Notification,
    Memory,
    Like,
    Comment,
    Media,
    Post,
    Album,
    SpecialDay,
    RootRelation,
    RootNode,
    FamilyRoot,
    FamilyMember,
    Family,
    LifeEvent,
    WorkHistory,
    Education,
    User,
)


@router.delete("/delete-all")
def delete_all(
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    if not settings.ALLOW_BULK_WIPE:
        raise AuthorizationError("Bulk wipe is disabled")

    actor_id = me.id
    deleted = {}
    with transaction(db):
        for model in WIPE_ORDER:
            deleted[model.__tablename__] = db.query(model).delete(synchronize_session=False)

    logger.warning("Bulk wipe by %s: %s", actor_id, deleted)
    return ok({"deleted": deleted}, "All data deleted")
