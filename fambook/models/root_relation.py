from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime
from fambook.database import Base
import uuid


class RootRelation(Base):
    """
    A directed edge between two nodes of the same root.
    PARENT points from parent to child. SPOUSE and SIBLING are
    symmetric but stored once.
    """

    __tablename__ = "root_relations"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    root_id = Column(
        String,
        ForeignKey("family_roots.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_node_id = Column(
        String,
        ForeignKey("root_nodes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    to_node_id = Column(
        String,
        ForeignKey("root_nodes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    relation_type = Column(String, nullable=False)  # PARENT | SPOUSE | SIBLING
    marriage_date = Column(DateTime, nullable=True)
    divorce_date = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    root = relationship("FamilyRoot", back_populates="relations")
    from_node = relationship("RootNode", foreign_keys=[from_node_id])
    to_node = relationship("RootNode", foreign_keys=[to_node_id])
