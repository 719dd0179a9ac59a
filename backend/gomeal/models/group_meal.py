"""GroupMeal, participant, invitation and chat message ORM models."""
import enum
import uuid
from sqlalchemy import (
    Column, String, Text, Integer, Float, Boolean, Date, DateTime, ForeignKey, JSON,
    UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from gomeal.database import Base
from gomeal.models.availability import Weekday, TimeSlot


class GroupMealStatus(str, enum.Enum):
    OPEN = "OPEN"
    FULL = "FULL"
    CLOSED = "CLOSED"


class GroupMealMode(str, enum.Enum):
    REAL = "REAL"
    MEET = "MEET"


class GroupMealBudget(str, enum.Enum):
    UNDER_1000 = "UNDER_1000"
    UNDER_1500 = "UNDER_1500"
    UNDER_2000 = "UNDER_2000"
    OVER_2000 = "OVER_2000"


class ParticipantStatus(str, enum.Enum):
    INVITED = "INVITED"
    JOINED = "JOINED"
    DECLINED = "DECLINED"
    CANCELLED = "CANCELLED"
    LATE = "LATE"
    GO = "GO"
    NOT_GO = "NOT_GO"
    PENDING = "PENDING"


# Statuses that occupy a seat against capacity
ACTIVE_STATUSES = (ParticipantStatus.INVITED, ParticipantStatus.JOINED, ParticipantStatus.LATE)
# Statuses of people actually coming
ATTENDING_STATUSES = (ParticipantStatus.JOINED, ParticipantStatus.LATE)
# Seats on auto-grouped meals answered from LINE
LINE_RESPONSE_STATUSES = (ParticipantStatus.PENDING, ParticipantStatus.GO, ParticipantStatus.NOT_GO)


class GroupMeal(Base):
    __tablename__ = "group_meals"

    group_meal_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    community_id = Column(String(36), ForeignKey("communities.community_id"), nullable=False)
    host_user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    host_membership_id = Column(String(36), ForeignKey("community_memberships.membership_id"), nullable=True)
    title = Column(String(100), nullable=False, default="")
    date = Column(Date, nullable=False)
    weekday = Column(SAEnum(Weekday), nullable=False)
    time_slot = Column(SAEnum(TimeSlot), nullable=False)
    meeting_time_minutes = Column(Integer, nullable=True)
    capacity = Column(Integer, nullable=False)
    status = Column(SAEnum(GroupMealStatus), nullable=False, default=GroupMealStatus.OPEN)
    mode = Column(SAEnum(GroupMealMode), nullable=False, default=GroupMealMode.REAL)
    budget = Column(SAEnum(GroupMealBudget), nullable=True)
    meeting_place = Column(String(255), nullable=True)
    place_name = Column(String(255), nullable=True)
    place_address = Column(String(255), nullable=True)
    place_latitude = Column(Float, nullable=True)
    place_longitude = Column(Float, nullable=True)
    place_google_place_id = Column(String(255), nullable=True)
    meet_url = Column(String(500), nullable=True)
    talk_topics = Column(JSON, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    host = relationship("User", foreign_keys=[host_user_id])
    participants = relationship(
        "GroupMealParticipant", back_populates="group_meal", cascade="all, delete-orphan",
        order_by="GroupMealParticipant.joined_at",
    )
    invitations = relationship("GroupMealInvitation", back_populates="group_meal", cascade="all, delete-orphan")
    messages = relationship("GroupMealChatMessage", back_populates="group_meal", cascade="all, delete-orphan")


class GroupMealParticipant(Base):
    __tablename__ = "group_meal_participants"
    __table_args__ = (UniqueConstraint("group_meal_id", "user_id", name="uq_participant_meal_user"),)

    participant_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    group_meal_id = Column(String(36), ForeignKey("group_meals.group_meal_id"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    status = Column(SAEnum(ParticipantStatus), nullable=False, default=ParticipantStatus.INVITED)
    is_host = Column(Boolean, nullable=False, default=False)
    is_creator = Column(Boolean, nullable=False, default=False)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    group_meal = relationship("GroupMeal", back_populates="participants")
    user = relationship("User")


class GroupMealInvitation(Base):
    """Record of a host inviting a member; tracks LINE open state and cancellation."""

    __tablename__ = "group_meal_invitations"
    __table_args__ = (UniqueConstraint("group_meal_id", "user_id", name="uq_invitation_meal_user"),)

    invitation_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    group_meal_id = Column(String(36), ForeignKey("group_meals.group_meal_id"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    invited_at = Column(DateTime(timezone=True), server_default=func.now())
    is_canceled = Column(Boolean, nullable=False, default=False)
    canceled_at = Column(DateTime(timezone=True), nullable=True)
    first_opened_at = Column(DateTime(timezone=True), nullable=True)
    last_opened_at = Column(DateTime(timezone=True), nullable=True)

    group_meal = relationship("GroupMeal", back_populates="invitations")
    user = relationship("User")


class GroupMealChatMessage(Base):
    __tablename__ = "group_meal_chat_messages"

    # Monotonic id doubles as the pagination cursor
    message_id = Column(Integer, primary_key=True, autoincrement=True)
    group_meal_id = Column(String(36), ForeignKey("group_meals.group_meal_id"), nullable=False, index=True)
    sender_user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    group_meal = relationship("GroupMeal", back_populates="messages")
    sender = relationship("User")
