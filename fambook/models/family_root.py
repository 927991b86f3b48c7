from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from fambook.database import Base
import uuid


class FamilyRoot(Base):
    """
    The family tree canvas. One per family, checked before insert
    rather than by a unique constraint.
    """

    __tablename__ = "family_roots"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    family_id = Column(String, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    created_by_id = Column(String, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    family = relationship("Family", back_populates="root")
    created_by = relationship("User", foreign_keys=[created_by_id], lazy="joined")

    nodes = relationship(
        "RootNode",
        back_populates="root",
        cascade="all, delete-orphan",
    )

    relations = relationship(
        "RootRelation",
        back_populates="root",
        cascade="all, delete-orphan",
    )
