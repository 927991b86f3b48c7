from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from fambook.config import settings
from fambook.database import Base
import uuid


class Album(Base):
    __tablename__ = "albums"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    family_id = Column(String, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(String, ForeignKey("special_days.id", ondelete="SET NULL"), nullable=True)
    created_by_id = Column(String, ForeignKey("users.id"), nullable=False)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    cover_image = Column(String, nullable=True)

    # Maximum number of media items the album accepts
    media_limit = Column(Integer, default=settings.DEFAULT_MEDIA_LIMIT, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    family = relationship("Family", back_populates="albums")
    event = relationship("SpecialDay", back_populates="albums")

    media = relationship(
        "Media",
        back_populates="album",
        cascade="all, delete-orphan",
        order_by="Media.created_at",
    )

    memories = relationship(
        "Memory",
        back_populates="album",
        cascade="all, delete-orphan",
    )
