from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Float, JSON, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from fambook.database import Base
import uuid


class RootNode(Base):
    __tablename__ = "root_nodes"

    # Ids come from the tree editor so relations can reference unsaved nodes
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    root_id = Column(
        String,
        ForeignKey("family_roots.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Nullable until a family member claims the node
    linked_member_id = Column(
        String,
        ForeignKey("family_members.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    gender = Column(String, nullable=True)  # MALE | FEMALE | OTHER
    date_of_birth = Column(DateTime, nullable=True)
    date_of_death = Column(DateTime, nullable=True)
    is_alive = Column(Boolean, default=True, nullable=False)

    birth_place = Column(String, nullable=True)
    current_place = Column(String, nullable=True)
    profile_image = Column(String, nullable=True)
    biography = Column(Text, nullable=True)
    custom_fields = Column(JSON, nullable=True)

    position_x = Column(Float, nullable=True)
    position_y = Column(Float, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    root = relationship("FamilyRoot", back_populates="nodes")
    linked_member = relationship("FamilyMember", foreign_keys=[linked_member_id])
