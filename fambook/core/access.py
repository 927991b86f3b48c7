from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from fambook.errors import AuthorizationError, NotFoundError
from fambook.models.family import Family
from fambook.models.family_member import FamilyMember
from fambook.models.user import User


APPROVED = "APPROVED"
PENDING = "PENDING"
ADMIN = "ADMIN"
MEMBER = "MEMBER"


@dataclass
class FamilyAccess:
    """What the guard found out about the caller and one family."""

    user: User
    family: Family
    member: Optional[FamilyMember]

    @property
    def is_creator(self) -> bool:
        return self.family.created_by_id == self.user.id

    @property
    def is_admin(self) -> bool:
        # The creator stays admin even if the role column drifts
        if self.is_creator:
            return True
        return self.member is not None and self.member.role == ADMIN


# --------------------------------------------------
# LOOKUPS
# --------------------------------------------------
def get_family(db: Session, family_id: str) -> Family:
    family = db.query(Family).filter(Family.id == family_id).first()
    if not family:
        raise NotFoundError("Family not found")
    return family


def find_membership(
    db: Session,
    family_id: str,
    user_id: str,
    status: Optional[str] = None,
) -> Optional[FamilyMember]:
    q = db.query(FamilyMember).filter(
        FamilyMember.family_id == family_id,
        FamilyMember.user_id == user_id,
    )
    if status:
        q = q.filter(FamilyMember.status == status)
    return q.first()


def approved_family_ids(db: Session, user_id: str):
    """Scalar subquery of the families the user is an APPROVED member of, for IN()."""
    return (
        db.query(FamilyMember.family_id)
        .filter(
            FamilyMember.user_id == user_id,
            FamilyMember.status == APPROVED,
        )
        .scalar_subquery()
    )


def approved_member_user_ids(
    db: Session,
    family_id: str,
    exclude_user_id: Optional[str] = None,
) -> list[str]:
    q = db.query(FamilyMember.user_id).filter(
        FamilyMember.family_id == family_id,
        FamilyMember.status == APPROVED,
    )
    if exclude_user_id:
        q = q.filter(FamilyMember.user_id != exclude_user_id)
    return [row.user_id for row in q.all()]


def admin_user_ids(db: Session, family: Family) -> list[str]:
    rows = db.query(FamilyMember.user_id).filter(
        FamilyMember.family_id == family.id,
        FamilyMember.status == APPROVED,
        FamilyMember.role == ADMIN,
    ).all()

    ids = {row.user_id for row in rows}
    ids.add(family.created_by_id)
    return sorted(ids)


# --------------------------------------------------
# PREDICATES
# --------------------------------------------------
def is_member(db: Session, user_id: str, family_id: str) -> bool:
    return find_membership(db, family_id, user_id, status=APPROVED) is not None


def is_admin(db: Session, user_id: str, family: Family) -> bool:
    if family.created_by_id == user_id:
        return True
    member = find_membership(db, family.id, user_id, status=APPROVED)
    return member is not None and member.role == ADMIN


def shares_family(db: Session, user_a_id: str, user_b_id: str) -> bool:
    if user_a_id == user_b_id:
        return True

    shared = db.query(FamilyMember).filter(
        FamilyMember.user_id == user_b_id,
        FamilyMember.status == APPROVED,
        FamilyMember.family_id.in_(approved_family_ids(db, user_a_id)),
    ).first()

    return shared is not None


# --------------------------------------------------
# GUARDS
# --------------------------------------------------
def require_member(
    db: Session,
    user: User,
    family_id: str,
    message: str = "You are not a member of this family",
) -> FamilyAccess:
    family = get_family(db, family_id)

    member = find_membership(db, family.id, user.id, status=APPROVED)
    if not member:
        raise AuthorizationError(message)

    return FamilyAccess(user=user, family=family, member=member)


def require_admin(
    db: Session,
    user: User,
    family_id: str,
    message: str = "Only family admins can do this",
) -> FamilyAccess:
    access = require_member(db, user, family_id)
    if not access.is_admin:
        raise AuthorizationError(message)
    return access


def require_creator(
    db: Session,
    user: User,
    family_id: str,
    message: str = "Only the family creator can do this",
) -> FamilyAccess:
    family = get_family(db, family_id)
    if family.created_by_id != user.id:
        raise AuthorizationError(message)

    member = find_membership(db, family.id, user.id)
    return FamilyAccess(user=user, family=family, member=member)


def require_any_membership(
    db: Session,
    user: User,
    family_id: str,
    message: str = "You are not a member of this family",
) -> FamilyAccess:
    """Any membership row counts, whatever its status."""
    family = get_family(db, family_id)

    member = find_membership(db, family.id, user.id)
    if not member and family.created_by_id != user.id:
        raise AuthorizationError(message)

    return FamilyAccess(user=user, family=family, member=member)
