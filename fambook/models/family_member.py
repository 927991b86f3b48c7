from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from fambook.database import Base
import uuid


class FamilyMember(Base):
    __tablename__ = "family_members"
    __table_args__ = (
        UniqueConstraint("user_id", "family_id", name="uq_family_member_user_family"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    family_id = Column(String, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    role = Column(String, default="MEMBER", nullable=False)  # ADMIN | MEMBER
    status = Column(String, default="PENDING", nullable=False)  # PENDING | APPROVED | REJECTED
    joined_at = Column(DateTime, default=datetime.utcnow)

    family = relationship("Family", back_populates="members")
    user = relationship("User", back_populates="memberships", lazy="joined")
