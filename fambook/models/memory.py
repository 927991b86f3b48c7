from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from fambook.database import Base
import uuid


class Memory(Base):
    """A personal bookmark on exactly one album or post."""

    __tablename__ = "memories"
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_memory_user_post"),
        UniqueConstraint("user_id", "album_id", name="uq_memory_user_album"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    album_id = Column(String, ForeignKey("albums.id", ondelete="CASCADE"), nullable=True)
    post_id = Column(String, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    album = relationship("Album", back_populates="memories")
    post = relationship("Post", back_populates="memories")
