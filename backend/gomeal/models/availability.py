"""AvailabilitySlot ORM model: weekly (weekday, time slot) availability per user."""
import enum
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.sql import func
from gomeal.database import Base


class Weekday(str, enum.Enum):
    MON = "MON"
    TUE = "TUE"
    WED = "WED"
    THU = "THU"
    FRI = "FRI"
    SAT = "SAT"
    SUN = "SUN"


class TimeSlot(str, enum.Enum):
    DAY = "DAY"
    NIGHT = "NIGHT"


class AvailabilityStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    UNAVAILABLE = "UNAVAILABLE"
    MEET_ONLY = "MEET_ONLY"


WEEKDAYS = list(Weekday)


class AvailabilitySlot(Base):
    __tablename__ = "availability_slots"
    __table_args__ = (UniqueConstraint("user_id", "weekday", "time_slot", name="uq_availability_user_slot"),)

    slot_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    weekday = Column(SAEnum(Weekday), nullable=False)
    time_slot = Column(SAEnum(TimeSlot), nullable=False)
    status = Column(SAEnum(AvailabilityStatus), nullable=False, default=AvailabilityStatus.UNAVAILABLE)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
