from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from fambook.database import Base
import uuid


class Media(Base):
    """A stored photo or video, owned by exactly one album or post."""

    __tablename__ = "media"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    album_id = Column(String, ForeignKey("albums.id", ondelete="CASCADE"), nullable=True, index=True)
    post_id = Column(String, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True, index=True)

    url = Column(String, nullable=False)
    type = Column(String, nullable=False)  # PHOTO | VIDEO
    caption = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    album = relationship("Album", back_populates="media")
    post = relationship("Post", back_populates="media")
