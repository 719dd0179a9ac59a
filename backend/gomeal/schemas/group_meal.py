"""Pydantic schemas for group meals, invitations and chat.

Create bodies are accepted nested (``schedule: {date, timeBand, ...}``) or
flat (``date``, ``timeBand``, ``placeName`` ...); both normalize to
GroupMealInput before reaching the service layer.
"""
from datetime import date, datetime
from typing import Literal, Optional, Union

from pydantic import Field, field_validator

from gomeal.models.availability import TimeSlot, Weekday
from gomeal.models.group_meal import GroupMealBudget, GroupMealMode, GroupMealStatus, ParticipantStatus
from gomeal.models.pair_meal import TimeBand
from gomeal.schemas.base import CamelModel
from gomeal.schemas.place import PlaceIn, PlaceOut, flat_place
from gomeal.services.group_meal_service import GroupMealInput, budget_from_value

TIME_PATTERN = r"^\d{2}:\d{2}$"
# Field names below shadow the type
DateType = date
Budget = Optional[Union[GroupMealBudget, int]]


class ScheduleIn(CamelModel):
    model_config = {"extra": "forbid"}

    date: date
    time_band: TimeBand
    meeting_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    place: Optional[PlaceIn] = None


class _GroupMealCreateBase(CamelModel):
    model_config = {"extra": "forbid"}

    title: str = Field(default="", max_length=100)
    capacity: int = Field(ge=3, le=10)
    budget: Budget = None
    mode: GroupMealMode = GroupMealMode.REAL
    meet_url: Optional[str] = Field(default=None, max_length=500)


class GroupMealCreateNested(_GroupMealCreateBase):
    schedule: ScheduleIn

    def to_input(self) -> GroupMealInput:
        return GroupMealInput(
            date=self.schedule.date,
            time_band=self.schedule.time_band,
            capacity=self.capacity,
            title=self.title,
            meeting_time=self.schedule.meeting_time,
            budget=budget_from_value(self.budget),
            mode=self.mode,
            meet_url=self.meet_url,
            place=self.schedule.place.to_input() if self.schedule.place else None,
        )


class GroupMealCreateFlat(_GroupMealCreateBase):
    date: date
    time_band: TimeBand
    meeting_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    place_name: Optional[str] = None
    place_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    google_place_id: Optional[str] = None

    def to_input(self) -> GroupMealInput:
        return GroupMealInput(
            date=self.date,
            time_band=self.time_band,
            capacity=self.capacity,
            title=self.title,
            meeting_time=self.meeting_time,
            budget=budget_from_value(self.budget),
            mode=self.mode,
            meet_url=self.meet_url,
            place=flat_place(self.place_name, self.place_address, self.latitude, self.longitude, self.google_place_id),
        )


GroupMealCreate = Union[GroupMealCreateNested, GroupMealCreateFlat]


class ScheduleUpdate(CamelModel):
    date: Optional[DateType] = None
    time_band: Optional[TimeBand] = None
    meeting_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    place: Optional[PlaceIn] = None


class GroupMealUpdate(CamelModel):
    title: Optional[str] = Field(default=None, max_length=100)
    capacity: Optional[int] = Field(default=None, ge=3, le=10)
    meeting_place: Optional[str] = Field(default=None, max_length=255)
    budget: Budget = None
    schedule: Optional[ScheduleUpdate] = None

    def to_changes(self) -> dict:
        sent = self.model_fields_set
        changes: dict = {}
        if "title" in sent and self.title is not None:
            changes["title"] = self.title
        if "capacity" in sent:
            changes["capacity"] = self.capacity
        if "meeting_place" in sent:
            changes["meeting_place"] = self.meeting_place
        if "budget" in sent:
            changes["budget"] = budget_from_value(self.budget)
        if self.schedule is not None:
            schedule_sent = self.schedule.model_fields_set
            for key in ("date", "time_band", "meeting_time"):
                if key in schedule_sent:
                    changes[key] = getattr(self.schedule, key)
            if "place" in schedule_sent:
                changes["place"] = self.schedule.place.to_input() if self.schedule.place else None
        return changes


class InviteRequest(CamelModel):
    user_ids: list[str] = Field(min_length=1)


class InviteResult(CamelModel):
    invited_user_ids: list[str]
    status: GroupMealStatus
    remaining_slots: int


class RespondRequest(CamelModel):
    action: Literal["ACCEPT", "DECLINE"]


class ParticipantStatusUpdate(CamelModel):
    status: Literal["JOINED", "LATE", "CANCELLED"]


class PersonOut(CamelModel):
    user_id: str
    name: str = ""
    profile_image_url: Optional[str] = None


class ParticipantOut(PersonOut):
    is_host: bool
    status: ParticipantStatus
    favorite_meals: list[str] = []


class ParticipantResult(CamelModel):
    user_id: str
    status: ParticipantStatus
    group_meal_status: GroupMealStatus


class ScheduleOut(CamelModel):
    date: date
    time_band: TimeBand
    meeting_time: Optional[str] = None
    meeting_time_minutes: Optional[int] = None
    place: Optional[PlaceOut] = None


class GroupMealOut(CamelModel):
    id: str
    title: str
    date: date
    weekday: Weekday
    time_slot: TimeSlot
    capacity: int
    status: GroupMealStatus
    mode: GroupMealMode
    budget: Optional[GroupMealBudget] = None
    meeting_place: Optional[str] = None
    meet_url: Optional[str] = None
    talk_topics: list[str] = []
    host: PersonOut
    schedule: ScheduleOut
    joined_count: int
    active_count: int
    remaining_slots: int
    my_status: str
    participants: list[ParticipantOut] = []


class GroupMealCandidateOut(CamelModel):
    user_id: str
    name: str = ""
    favorite_meals: list[str] = []
    profile_image_url: Optional[str] = None
    is_available_for_slot: bool


class InvitationOut(CamelModel):
    id: str
    user_id: str
    name: str = ""
    invited_at: Optional[datetime] = None
    is_canceled: bool
    canceled_at: Optional[datetime] = None
    open_state: Literal["SENT_UNOPENED", "OPENED"]
    first_opened_at: Optional[datetime] = None
    last_opened_at: Optional[datetime] = None
    participant_status: Optional[ParticipantStatus] = None


class ChatMessageIn(CamelModel):
    text: str = Field(min_length=1, max_length=1000)

    @field_validator("text", mode="before")
    @classmethod
    def strip_text(cls, value):
        # Length limits apply to the trimmed message
        return value.strip() if isinstance(value, str) else value


class ChatMessageOut(CamelModel):
    id: int
    group_meal_id: str
    sender: PersonOut
    text: str
    created_at: Optional[datetime] = None


class ChatPageOut(CamelModel):
    messages: list[ChatMessageOut]
    next_cursor: Optional[int] = None
