"""PairMeal ORM model: a scheduled 1:1 meal attached to a Match."""
import enum
import uuid
from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from gomeal.database import Base


class TimeBand(str, enum.Enum):
    LUNCH = "LUNCH"
    DINNER = "DINNER"


class PairMealStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class PairMeal(Base):
    __tablename__ = "pair_meals"

    pair_meal_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    match_id = Column(String(36), ForeignKey("matches.match_id"), nullable=False)
    member_a_id = Column(String(36), ForeignKey("community_memberships.membership_id"), nullable=False)
    member_b_id = Column(String(36), ForeignKey("community_memberships.membership_id"), nullable=False)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    time_band = Column(SAEnum(TimeBand), nullable=False)
    meeting_time_minutes = Column(Integer, nullable=True)
    place_name = Column(String(255), nullable=True)
    place_address = Column(String(255), nullable=True)
    place_latitude = Column(Float, nullable=True)
    place_longitude = Column(Float, nullable=True)
    place_google_place_id = Column(String(255), nullable=True)
    restaurant_name = Column(String(255), nullable=True)
    restaurant_address = Column(String(255), nullable=True)
    status = Column(SAEnum(PairMealStatus), nullable=False, default=PairMealStatus.CONFIRMED)
    created_by_member_id = Column(String(36), ForeignKey("community_memberships.membership_id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    match = relationship("Match", back_populates="pair_meals")
