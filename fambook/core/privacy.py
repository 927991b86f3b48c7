from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from fambook.core.access import shares_family
from fambook.models.user import User


class Visibility(str, Enum):
    PUBLIC = "public"
    FAMILY = "family"
    PRIVATE = "private"


PRIVACY_DEFAULTS: dict[str, Visibility] = {
    "showBirthPlace": Visibility.FAMILY,
    "showCurrentPlace": Visibility.PUBLIC,
    "showLanguages": Visibility.FAMILY,
    "showRelationshipStatus": Visibility.FAMILY,
    "showEducation": Visibility.PUBLIC,
    "showWork": Visibility.PUBLIC,
    "showInterests": Visibility.PUBLIC,
    "showCustomFields": Visibility.PUBLIC,
}

TAB_VISIBILITY_KEY = "tabVisibility"

TAB_VISIBILITY_DEFAULTS: dict[str, str] = {
    "overview": "everyone",
    "memories": "everyone",
    "timeline": "everyone",
    "details": "everyone",
    "posts": "everyone",
}

# Profile keys each privacy setting hides
GUARDED_FIELDS: dict[str, tuple[str, ...]] = {
    "showBirthPlace": ("birthPlace",),
    "showCurrentPlace": ("currentPlace",),
    "showLanguages": ("languages",),
    "showRelationshipStatus": ("relationshipStatus",),
    "showEducation": ("education",),
    "showWork": ("workHistory",),
    "showInterests": ("interests",),
}


def merged_privacy(stored: Optional[dict]) -> dict[str, Visibility]:
    """Defaults overlaid with whatever the user saved."""
    merged = dict(PRIVACY_DEFAULTS)
    for key, value in (stored or {}).items():
        if key in PRIVACY_DEFAULTS:
            merged[key] = Visibility(value)
    return merged


def merged_tab_visibility(stored: Optional[dict]) -> dict[str, str]:
    merged = dict(TAB_VISIBILITY_DEFAULTS)
    merged.update((stored or {}).get(TAB_VISIBILITY_KEY) or {})
    return merged


def viewer_audience(db: Session, viewer: User, owner: User) -> Visibility:
    """The widest visibility level the viewer is allowed to see."""
    if viewer.id == owner.id:
        return Visibility.PRIVATE
    if shares_family(db, viewer.id, owner.id):
        return Visibility.FAMILY
    return Visibility.PUBLIC


def can_see(level: Visibility, audience: Visibility) -> bool:
    order = [Visibility.PUBLIC, Visibility.FAMILY, Visibility.PRIVATE]
    return order.index(level) <= order.index(audience)


def hidden_fields(privacy: dict[str, Visibility], audience: Visibility) -> set[str]:
    hidden = set()
    for setting, fields in GUARDED_FIELDS.items():
        if not can_see(privacy[setting], audience):
            hidden.update(fields)
    return hidden
