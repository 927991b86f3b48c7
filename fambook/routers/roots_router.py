import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from fambook.core.access import (
    APPROVED,
    approved_family_ids,
    get_family,
    require_admin,
    require_any_membership,
    require_member,
)
from fambook.core.identity import get_current_user
from fambook.core.serializers import serialize_user
from fambook.database import get_db, transaction
from fambook.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from fambook.models.family import Family
from fambook.models.family_member import FamilyMember
from fambook.models.family_root import FamilyRoot
from fambook.models.root_node import RootNode
from fambook.models.root_relation import RootRelation
from fambook.models.user import User
from fambook.schemas.base import parse_payload
from fambook.schemas.root_schema import RootCreate, RootSave
from fambook.utils.responses import created, ok

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Family Roots"])


NODE_HAS_RELATIONS = "Cannot delete a node with existing relationships. Remove all relationships first."


# ============================================================
# HELPERS
# ============================================================

def resolve_root(db: Session, family_id: str, root_id: str) -> FamilyRoot:
    root = db.query(FamilyRoot).filter(
        FamilyRoot.id == root_id,
        FamilyRoot.family_id == family_id,
    ).first()
    if not root:
        raise NotFoundError("Family root not found")
    return root


def require_node_in_root(db: Session, root: FamilyRoot, node_id: str) -> RootNode:
    node = db.query(RootNode).filter(
        RootNode.id == node_id,
        RootNode.root_id == root.id,
    ).first()
    if not node:
        raise NotFoundError("Node not found")
    return node


def relations_touching(db: Session, node_id: str):
    return db.query(RootRelation).filter(
        or_(
            RootRelation.from_node_id == node_id,
            RootRelation.to_node_id == node_id,
        )
    )


def _serialize_node(node: RootNode) -> dict:
    return {
        "id": node.id,
        "rootId": node.root_id,
        "firstName": node.first_name,
        "lastName": node.last_name,
        "dateOfBirth": node.date_of_birth,
        "dateOfDeath": node.date_of_death,
        "gender": node.gender,
        "isAlive": node.is_alive,
        "birthPlace": node.birth_place,
        "currentPlace": node.current_place,
        "profileImage": node.profile_image,
        "biography": node.biography,
        "customFields": node.custom_fields,
        "linkedMemberId": node.linked_member_id,
        "positionX": node.position_x,
        "positionY": node.position_y,
    }


def _serialize_relation(rel: RootRelation) -> dict:
    return {
        "id": rel.id,
        "rootId": rel.root_id,
        "fromNodeId": rel.from_node_id,
        "toNodeId": rel.to_node_id,
        "relationType": rel.relation_type,
        "marriageDate": rel.marriage_date,
        "divorceDate": rel.divorce_date,
        "isActive": rel.is_active,
    }


def serialize_root(root: FamilyRoot, is_admin: bool) -> dict:
    return {
        "id": root.id,
        "familyId": root.family_id,
        "name": root.name,
        "description": root.description,
        "createdAt": root.created_at,
        "updatedAt": root.updated_at,
        "createdBy": serialize_user(root.created_by),
        "nodes": [_serialize_node(n) for n in root.nodes],
        "relations": [_serialize_relation(r) for r in root.relations],
        "isAdmin": is_admin,
    }


NODE_FIELDS = (
    "first_name",
    "last_name",
    "date_of_birth",
    "date_of_death",
    "gender",
    "is_alive",
    "birth_place",
    "current_place",
    "profile_image",
    "biography",
    "custom_fields",
    "linked_member_id",
    "position_x",
    "position_y",
)

RELATION_FIELDS = (
    "from_node_id",
    "to_node_id",
    "relation_type",
    "marriage_date",
    "divorce_date",
    "is_active",
)


def check_member_links(db: Session, family_id: str, nodes):
    """
    A linked member must be APPROVED in the family and linked by at
    most one node once the save is applied. Nodes in the payload take
    their new link, so moving or swapping links in one save is allowed.
    Checked by query before writing, not by a constraint.
    """
    wanted = {}
    for node in nodes:
        if not node.linked_member_id:
            continue
        if node.linked_member_id in wanted:
            raise ConflictError("A family member can only be linked to one node")
        wanted[node.linked_member_id] = node.id

    if not wanted:
        return

    approved = {
        row.id
        for row in db.query(FamilyMember.id).filter(
            FamilyMember.id.in_(list(wanted)),
            FamilyMember.family_id == family_id,
            FamilyMember.status == APPROVED,
        )
    }
    missing = set(wanted) - approved
    if missing:
        raise ValidationError(
            "Linked members must be approved members of this family",
            errors=[{"field": "linkedMemberId", "message": m} for m in sorted(missing)],
        )

    taken = (
        db.query(RootNode.id, RootNode.linked_member_id)
        .join(FamilyRoot, FamilyRoot.id == RootNode.root_id)
        .filter(
            FamilyRoot.family_id == family_id,
            RootNode.linked_member_id.in_(list(wanted)),
        )
        .all()
    )
    saved_ids = {node.id for node in nodes}
    for node_id, member_id in taken:
        if node_id in saved_ids:
            continue
        if wanted[member_id] != node_id:
            raise ConflictError("This family member is already linked to another node")


# ============================================================
# CREATE / LIST / DELETE ROOTS
# ============================================================

@router.post("/roots")
def create_root(
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    family_id = payload.get("familyId") if isinstance(payload, dict) else None
    if family_id and isinstance(family_id, str):
        require_any_membership(db, me, family_id)

    data = parse_payload(RootCreate, payload)

    # Check-then-insert; concurrent creates for one family can both pass
    existing = db.query(FamilyRoot).filter(FamilyRoot.family_id == data.family_id).first()
    if existing:
        raise ConflictError("A family tree already exists for this family")

    root = FamilyRoot(
        family_id=data.family_id,
        name=data.name.strip(),
        description=data.description,
        created_by_id=me.id,
    )
    db.add(root)
    db.commit()
    db.refresh(root)

    logger.info("Root %s created for family %s", root.id, root.family_id)
    return created(serialize_root(root, is_admin=True), "Family root created successfully")


@router.get("/roots")
def list_roots(
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    roots = (
        db.query(FamilyRoot)
        .filter(
            or_(
                FamilyRoot.family_id.in_(approved_family_ids(db, me.id)),
                FamilyRoot.created_by_id == me.id,
            )
        )
        .order_by(FamilyRoot.created_at.desc())
        .all()
    )

    root_ids = [r.id for r in roots]
    node_counts = dict(
        db.query(RootNode.root_id, func.count(RootNode.id))
        .filter(RootNode.root_id.in_(root_ids))
        .group_by(RootNode.root_id)
        .all()
    ) if root_ids else {}
    relation_counts = dict(
        db.query(RootRelation.root_id, func.count(RootRelation.id))
        .filter(RootRelation.root_id.in_(root_ids))
        .group_by(RootRelation.root_id)
        .all()
    ) if root_ids else {}

    families = {
        f.id: f
        for f in db.query(Family).filter(Family.id.in_([r.family_id for r in roots]))
    }

    return ok(
        [
            {
                "id": r.id,
                "name": r.name,
                "description": r.description,
                "familyId": r.family_id,
                "family": {"id": r.family_id, "name": families[r.family_id].name},
                "createdAt": r.created_at,
                "createdBy": serialize_user(r.created_by),
                "nodeCount": node_counts.get(r.id, 0),
                "relationCount": relation_counts.get(r.id, 0),
                "isAdmin": r.created_by_id == me.id,
            }
            for r in roots
        ],
        "Family roots fetched successfully",
    )


@router.delete("/roots/{root_id}")
def delete_root(
    root_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    root = db.query(FamilyRoot).filter(FamilyRoot.id == root_id).first()
    if not root:
        raise NotFoundError("Family root not found")

    family = get_family(db, root.family_id)
    if family.created_by_id != me.id:
        raise AuthorizationError("Only the family admin can delete this family root")

    with transaction(db):
        db.delete(root)

    logger.info("Root %s deleted by %s", root_id, me.id)
    return ok(message="Family root deleted successfully")


# ============================================================
# TREE EDITOR
# ============================================================

@router.get("/families/{family_id}/roots/{root_id}")
def get_root(
    family_id: str,
    root_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    access = require_member(db, me, family_id)
    root = resolve_root(db, family_id, root_id)
    return ok(serialize_root(root, access.is_admin), "Family root fetched successfully")


@router.put("/families/{family_id}/roots/{root_id}")
def save_root(
    family_id: str,
    root_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    """
    Saves the whole editor canvas: nodes and relations are upserted by
    their client ids, relations missing from the payload are removed.
    """
    access = require_admin(db, me, family_id, "Only admins can update family roots")
    root = resolve_root(db, family_id, root_id)
    data = parse_payload(RootSave, payload)

    existing_nodes = {n.id: n for n in root.nodes}

    if data.nodes is not None:
        # Node ids are global; refuse ids that belong to another root
        foreign = db.query(RootNode.id).filter(
            RootNode.id.in_([n.id for n in data.nodes]),
            RootNode.root_id != root.id,
        ).first()
        if foreign:
            raise ValidationError(f"Node {foreign.id} belongs to another family root")

        check_member_links(db, access.family.id, data.nodes)

    node_ids = set(existing_nodes) | {n.id for n in data.nodes or []}
    if data.relations is not None:
        for rel in data.relations:
            if rel.from_node_id not in node_ids or rel.to_node_id not in node_ids:
                raise ValidationError(
                    "Relations must connect nodes of this family root",
                    errors=[{"field": "relations", "message": rel.id}],
                )

    with transaction(db):
        for item in data.nodes or []:
            node = existing_nodes.get(item.id)
            if node is None:
                node = RootNode(id=item.id, root_id=root.id)
                db.add(node)
            for field in NODE_FIELDS:
                setattr(node, field, getattr(item, field))

        if data.relations is not None:
            existing_relations = {r.id: r for r in root.relations}
            keep = {r.id for r in data.relations}

            for rel_id, rel in existing_relations.items():
                if rel_id not in keep:
                    db.delete(rel)

            # Nodes first, so relation foreign keys resolve
            db.flush()

            for item in data.relations:
                rel = existing_relations.get(item.id)
                if rel is None:
                    taken = db.query(RootRelation.id).filter(RootRelation.id == item.id).first()
                    if taken:
                        raise ValidationError(f"Relation {item.id} belongs to another family root")
                    rel = RootRelation(id=item.id, root_id=root.id)
                    db.add(rel)
                for field in RELATION_FIELDS:
                    setattr(rel, field, getattr(item, field))

    db.refresh(root)
    return ok(serialize_root(root, access.is_admin), "Family root updated successfully")


# ============================================================
# NODE DELETION
# ============================================================

@router.get("/families/{family_id}/roots/{root_id}/nodes/{node_id}")
def check_node_deletable(
    family_id: str,
    root_id: str,
    node_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_member(db, me, family_id)
    root = resolve_root(db, family_id, root_id)
    node = require_node_in_root(db, root, node_id)

    count = relations_touching(db, node.id).count()

    return ok(
        {
            "canDelete": count == 0,
            "hasRelationships": count > 0,
            "relationshipsCount": count,
        },
        "Node status fetched successfully",
    )


@router.delete("/families/{family_id}/roots/{root_id}/nodes/{node_id}")
def delete_node(
    family_id: str,
    root_id: str,
    node_id: str,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    require_admin(db, me, family_id, "Only admins can delete nodes")
    root = resolve_root(db, family_id, root_id)
    node = require_node_in_root(db, root, node_id)

    count = relations_touching(db, node.id).count()
    if count:
        raise ValidationError(
            NODE_HAS_RELATIONS,
            data={"canDelete": False, "relationshipsCount": count},
        )

    with transaction(db):
        db.delete(node)

    return ok({"canDelete": True, "deletedNodeId": node_id}, "Node deleted successfully")
