"""Pydantic schemas for matches and pair meals.

Pair-meal bodies come in two shapes: flat (``placeName``, ``placeAddress``,
``latitude`` ...) or nested (``place: {...}``). Both variants forbid unknown
keys so exactly one of them validates, and each normalizes to PairMealInput.
"""
from datetime import datetime
from typing import Optional, Union

from pydantic import Field

from gomeal.models.pair_meal import PairMealStatus, TimeBand
from gomeal.schemas.base import CamelModel
from gomeal.schemas.place import PlaceIn, PlaceOut, flat_place
from gomeal.services.pair_meal_service import PairMealInput

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^\d{2}:\d{2}$"


class MatchOut(CamelModel):
    id: str
    partner_user_id: str
    partner_name: str = ""
    partner_favorite_meals: list[str] = []
    profile_image_url: Optional[str] = None
    matched_at: Optional[datetime] = None


class PairMealOut(CamelModel):
    id: str
    date: str
    time_band: TimeBand
    meeting_time: Optional[str] = None
    place: Optional[PlaceOut] = None
    restaurant_name: Optional[str] = None
    restaurant_address: Optional[str] = None
    status: PairMealStatus


class MatchDetailOut(MatchOut):
    partner_bio: Optional[str] = None
    pair_meals: list[PairMealOut] = []


class _PairMealBase(CamelModel):
    model_config = {"extra": "forbid"}

    date: str = Field(pattern=DATE_PATTERN)
    time_band: TimeBand
    meeting_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    restaurant_name: Optional[str] = None
    restaurant_address: Optional[str] = None


class PairMealCreateFlat(_PairMealBase):
    place_name: Optional[str] = None
    place_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    google_place_id: Optional[str] = None

    def to_input(self) -> PairMealInput:
        return PairMealInput(
            date=self.date,
            time_band=self.time_band,
            meeting_time=self.meeting_time,
            place=flat_place(self.place_name, self.place_address, self.latitude, self.longitude, self.google_place_id),
            restaurant_name=self.restaurant_name,
            restaurant_address=self.restaurant_address,
        )


class PairMealCreateNested(_PairMealBase):
    place: PlaceIn

    def to_input(self) -> PairMealInput:
        return PairMealInput(
            date=self.date,
            time_band=self.time_band,
            meeting_time=self.meeting_time,
            place=self.place.to_input(),
            restaurant_name=self.restaurant_name,
            restaurant_address=self.restaurant_address,
        )


PairMealCreate = Union[PairMealCreateNested, PairMealCreateFlat]


class PairMealUpdate(CamelModel):
    model_config = {"extra": "forbid"}

    date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)
    time_band: Optional[TimeBand] = None
    meeting_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    place: Optional[PlaceIn] = None
    place_name: Optional[str] = None
    place_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    google_place_id: Optional[str] = None
    restaurant_name: Optional[str] = None
    restaurant_address: Optional[str] = None

    def to_changes(self) -> dict:
        """Only the keys the client sent, with place keys folded into one ``place``."""
        sent = self.model_fields_set
        changes = {key: getattr(self, key) for key in ("date", "time_band", "meeting_time",
                                                       "restaurant_name", "restaurant_address") if key in sent}
        if "place" in sent:
            changes["place"] = self.place.to_input() if self.place else None
        elif sent & {"place_name", "place_address", "latitude", "longitude", "google_place_id"}:
            changes["place"] = flat_place(
                self.place_name, self.place_address, self.latitude, self.longitude, self.google_place_id
            )
        return changes


class PairMealCreated(CamelModel):
    pair_meal_id: str
