"""Like, SuperLike and Match ORM models."""
import enum
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from gomeal.database import Base


class LikeAnswer(str, enum.Enum):
    YES = "YES"
    NO = "NO"


class Like(Base):
    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("from_user_id", "to_user_id", "community_id", name="uq_like_pair_community"),
    )

    like_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    from_user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    to_user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    community_id = Column(String(36), ForeignKey("communities.community_id"), nullable=False)
    answer = Column(SAEnum(LikeAnswer), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class SuperLike(Base):
    __tablename__ = "super_likes"
    # One outstanding super-like per sender per community
    __table_args__ = (UniqueConstraint("from_user_id", "community_id", name="uq_super_like_sender_community"),)

    super_like_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    from_user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    to_user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    community_id = Column(String(36), ForeignKey("communities.community_id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", "community_id", name="uq_match_pair_community"),
        CheckConstraint("user1_id < user2_id", name="ck_match_sorted_pair"),
    )

    match_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user1_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    user2_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    community_id = Column(String(36), ForeignKey("communities.community_id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user1 = relationship("User", foreign_keys=[user1_id])
    user2 = relationship("User", foreign_keys=[user2_id])
    pair_meals = relationship("PairMeal", back_populates="match", cascade="all, delete-orphan")

    def partner_id(self, user_id: str) -> str:
        return self.user2_id if self.user1_id == user_id else self.user1_id

    def partner_of(self, user_id: str):
        return self.user2 if self.user1_id == user_id else self.user1
