from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from fambook.database import Base
import uuid


class Family(Base):
    __tablename__ = "families"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # 12 hex chars, shared out of band to invite relatives
    join_token = Column(String, unique=True, index=True, nullable=False)

    created_by_id = Column(String, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    created_by = relationship("User", foreign_keys=[created_by_id])

    members = relationship(
        "FamilyMember",
        back_populates="family",
        cascade="all, delete-orphan",
    )

    root = relationship(
        "FamilyRoot",
        back_populates="family",
        uselist=False,
        cascade="all, delete-orphan",
    )

    posts = relationship(
        "Post",
        back_populates="family",
        cascade="all, delete-orphan",
    )

    albums = relationship(
        "Album",
        back_populates="family",
        cascade="all, delete-orphan",
    )

    special_days = relationship(
        "SpecialDay",
        back_populates="family",
        cascade="all, delete-orphan",
    )
