"""Place payload shared by group meals and pair meals."""
from typing import Optional

from pydantic import Field

from gomeal.schemas.base import CamelModel
from gomeal.services.group_meal_service import PlaceInput


class PlaceIn(CamelModel):
    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1, max_length=255)
    address: Optional[str] = Field(default=None, max_length=255)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    google_place_id: Optional[str] = None

    def to_input(self) -> PlaceInput:
        return PlaceInput(
            name=self.name.strip(),
            address=self.address,
            latitude=self.latitude,
            longitude=self.longitude,
            google_place_id=self.google_place_id,
        )


class PlaceOut(CamelModel):
    name: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    google_place_id: Optional[str] = None


def flat_place(
    name: Optional[str], address: Optional[str], latitude: Optional[float],
    longitude: Optional[float], google_place_id: Optional[str],
) -> Optional[PlaceInput]:
    """A place from flat body keys; no name means no place."""
    if not name or not name.strip():
        return None
    return PlaceInput(
        name=name.strip(), address=address, latitude=latitude, longitude=longitude, google_place_id=google_place_id,
    )
