"""User and Profile ORM models."""
import uuid
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from gomeal.database import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False, default="")
    is_admin = Column(Boolean, nullable=False, default=False)
    line_user_id = Column(String(64), nullable=True, unique=True)
    line_display_name = Column(String(100), nullable=True)
    line_picture_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    profile = relationship("Profile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    memberships = relationship("CommunityMembership", back_populates="user", cascade="all, delete-orphan")

    @property
    def display_name(self) -> str:
        if self.profile and self.profile.name:
            return self.profile.name
        return self.line_display_name or ""


class Profile(Base):
    __tablename__ = "profiles"

    user_id = Column(String(36), ForeignKey("users.user_id"), primary_key=True)
    name = Column(String(50), nullable=False, default="")
    favorite_meals = Column(JSON, nullable=False, default=list)
    hobbies = Column(JSON, nullable=False, default=list)
    main_area = Column(String(50), nullable=True)
    sub_areas = Column(JSON, nullable=False, default=list)
    default_budget = Column(String(20), nullable=True)
    drinking_style = Column(String(30), nullable=True)
    meal_style = Column(String(30), nullable=True)
    go_meal_frequency = Column(String(30), nullable=True)
    ng_foods = Column(JSON, nullable=False, default=list)
    bio = Column(Text, nullable=True)
    profile_image_url = Column(String(500), nullable=True)
    is_seed_member = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="profile")
