"""Community and CommunityMembership ORM models."""
import enum
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from gomeal.database import Base


class MembershipStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Community(Base):
    __tablename__ = "communities"

    community_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    invite_code = Column(String(8), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    memberships = relationship("CommunityMembership", back_populates="community", cascade="all, delete-orphan")


class CommunityMembership(Base):
    __tablename__ = "community_memberships"
    __table_args__ = (UniqueConstraint("user_id", "community_id", name="uq_membership_user_community"),)

    membership_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    community_id = Column(String(36), ForeignKey("communities.community_id"), nullable=False)
    status = Column(SAEnum(MembershipStatus), nullable=False, default=MembershipStatus.pending)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="memberships")
    community = relationship("Community", back_populates="memberships")
