"""Pydantic schemas for weekly availability."""
from gomeal.models.availability import AvailabilityStatus, TimeSlot, Weekday
from gomeal.schemas.base import CamelModel


class SlotIn(CamelModel):
    weekday: Weekday
    time_slot: TimeSlot
    status: AvailabilityStatus


class SlotOut(SlotIn):
    pass


class AvailabilityStatusOut(CamelModel):
    available_count: int
    required: int
    meets_requirement: bool


class PairGridCell(CamelModel):
    weekday: Weekday
    time_slot: TimeSlot
    self_available: bool
    partner_available: bool
    both_available: bool


class OverlapSlot(CamelModel):
    weekday: Weekday
    time_slot: TimeSlot
