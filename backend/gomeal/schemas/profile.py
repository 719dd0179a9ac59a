"""Pydantic schemas for profiles."""
from datetime import datetime
from typing import Optional

from pydantic import Field

from gomeal.schemas.base import CamelModel


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    favorite_meals: Optional[list[str]] = Field(default=None, max_length=3)
    hobbies: Optional[list[str]] = Field(default=None, max_length=10)
    main_area: Optional[str] = Field(default=None, max_length=50)
    sub_areas: Optional[list[str]] = None
    default_budget: Optional[str] = None
    drinking_style: Optional[str] = None
    meal_style: Optional[str] = None
    go_meal_frequency: Optional[str] = None
    ng_foods: Optional[list[str]] = None
    bio: Optional[str] = Field(default=None, max_length=500)


class ProfileOut(CamelModel):
    user_id: str
    name: str
    favorite_meals: list[str] = []
    hobbies: list[str] = []
    main_area: Optional[str] = None
    sub_areas: list[str] = []
    default_budget: Optional[str] = None
    drinking_style: Optional[str] = None
    meal_style: Optional[str] = None
    go_meal_frequency: Optional[str] = None
    ng_foods: list[str] = []
    bio: Optional[str] = None
    profile_image_url: Optional[str] = None
    updated_at: Optional[datetime] = None
    completion_rate: int = 0
