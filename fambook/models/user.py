from sqlalchemy import Column, String, DateTime, Date, JSON, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from fambook.database import Base
import uuid


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Subject of the identity provider token
    external_id = Column(String, unique=True, index=True, nullable=False)

    email = Column(String, nullable=False)
    full_name = Column(String, nullable=False, default="")
    image_url = Column(String, nullable=True)

    # -------------------------
    # PROFILE
    # -------------------------
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    profile_image = Column(String, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    birth_place = Column(String, nullable=True)
    current_place = Column(String, nullable=True)
    relationship_status = Column(String, nullable=True)
    languages = Column(JSON, nullable=False, default=list)
    interests = Column(JSON, nullable=False, default=list)

    # field -> public | family | private, plus "tabVisibility"
    privacy_settings = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # -------------------------
    # RELATIONSHIPS
    # -------------------------
    memberships = relationship(
        "FamilyMember",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    education = relationship(
        "Education",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Education.start_year.desc()",
    )

    work_history = relationship(
        "WorkHistory",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="WorkHistory.start_date.desc()",
    )

    life_events = relationship(
        "LifeEvent",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def avatar(self):
        return self.profile_image or self.image_url
