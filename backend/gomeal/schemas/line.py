"""Pydantic schemas for the LINE job endpoints."""
from gomeal.schemas.base import CamelModel


class DispatchOut(CamelModel):
    sent: int
    failed: int
    target: int


class AutoGroupMealsOut(CamelModel):
    group_meal_ids: list[str]
    notified: int
    failed: int
