from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from fambook.database import Base
import uuid


class SpecialDay(Base):
    """A family event (birthday, wedding, ...) albums can be attached to."""

    __tablename__ = "special_days"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    family_id = Column(String, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    created_by_id = Column(String, ForeignKey("users.id"), nullable=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    date = Column(DateTime, nullable=False, index=True)
    time = Column(String, nullable=True)
    venue = Column(String, nullable=True)
    type = Column(String, nullable=False)  # BIRTHDAY | ANNIVERSARY | WEDDING | GRADUATION | HOLIDAY | OTHER

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    family = relationship("Family", back_populates="special_days")
    albums = relationship("Album", back_populates="event")
