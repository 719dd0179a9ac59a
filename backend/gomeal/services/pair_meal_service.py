"""1:1 meals scheduled on a match."""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from gomeal.models.community import CommunityMembership, MembershipStatus
from gomeal.models.like import Match
from gomeal.models.pair_meal import PairMeal, PairMealStatus, TimeBand
from gomeal.services import dates
from gomeal.services.group_meal_service import PlaceInput
from gomeal.services.match_service import get_match_for_member

logger = logging.getLogger(__name__)


@dataclass
class PairMealInput:
    date: str
    time_band: TimeBand
    meeting_time: Optional[str] = None
    place: Optional[PlaceInput] = None
    restaurant_name: Optional[str] = None
    restaurant_address: Optional[str] = None


def _strip(value: Optional[str]) -> Optional[str]:
    return value.strip() if value is not None else None


def _apply_place(pair_meal: PairMeal, place: Optional[PlaceInput]) -> None:
    pair_meal.place_name = _strip(place.name) if place else None
    pair_meal.place_address = _strip(place.address) if place else None
    pair_meal.place_latitude = place.latitude if place else None
    pair_meal.place_longitude = place.longitude if place else None
    pair_meal.place_google_place_id = _strip(place.google_place_id) if place else None


def _approved_pair_memberships(db: Session, match: Match) -> tuple[CommunityMembership, CommunityMembership]:
    rows = (
        db.query(CommunityMembership)
        .filter(
            CommunityMembership.community_id == match.community_id,
            CommunityMembership.status == MembershipStatus.approved,
            CommunityMembership.user_id.in_([match.user1_id, match.user2_id]),
        )
        .all()
    )
    by_user = {m.user_id: m for m in rows}
    if match.user1_id not in by_user or match.user2_id not in by_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Both match members must have approved community memberships",
        )
    return by_user[match.user1_id], by_user[match.user2_id]


def create_pair_meal(db: Session, membership: CommunityMembership, match_id: str, data: PairMealInput) -> PairMeal:
    match = get_match_for_member(db, membership, match_id)
    member_a, member_b = _approved_pair_memberships(db, match)

    pair_meal = PairMeal(
        match_id=match.match_id,
        member_a_id=member_a.membership_id,
        member_b_id=member_b.membership_id,
        date=data.date,
        time_band=data.time_band,
        meeting_time_minutes=dates.parse_time_to_minutes(data.meeting_time) if data.meeting_time else None,
        restaurant_name=_strip(data.restaurant_name),
        restaurant_address=_strip(data.restaurant_address),
        status=PairMealStatus.CONFIRMED,
        created_by_member_id=membership.membership_id,
    )
    _apply_place(pair_meal, data.place)
    db.add(pair_meal)
    db.commit()
    db.refresh(pair_meal)
    logger.info("User %s scheduled pair meal %s on match %s", membership.user_id, pair_meal.pair_meal_id, match_id)
    return pair_meal


def get_pair_meal(db: Session, membership: CommunityMembership, match_id: str, pair_meal_id: str) -> PairMeal:
    pair_meal = db.query(PairMeal).filter(PairMeal.pair_meal_id == pair_meal_id).first()
    if pair_meal is None or pair_meal.match_id != match_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    if membership.membership_id not in (pair_meal.member_a_id, pair_meal.member_b_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return pair_meal


def update_pair_meal(
    db: Session, membership: CommunityMembership, match_id: str, pair_meal_id: str, changes: dict[str, Any]
) -> PairMeal:
    """Partial update; only keys present in ``changes`` are touched."""
    pair_meal = get_pair_meal(db, membership, match_id, pair_meal_id)
    if changes.get("date") is not None:
        pair_meal.date = changes["date"]
    if changes.get("time_band") is not None:
        pair_meal.time_band = changes["time_band"]
    if "meeting_time" in changes:
        meeting_time = changes["meeting_time"]
        pair_meal.meeting_time_minutes = dates.parse_time_to_minutes(meeting_time) if meeting_time else None
    if "place" in changes:
        _apply_place(pair_meal, changes["place"])
    for key in ("restaurant_name", "restaurant_address"):
        if key in changes:
            setattr(pair_meal, key, _strip(changes[key]))
    db.commit()
    db.refresh(pair_meal)
    logger.info("User %s updated pair meal %s", membership.user_id, pair_meal_id)
    return pair_meal


def cancel_pair_meal(db: Session, membership: CommunityMembership, match_id: str, pair_meal_id: str) -> None:
    pair_meal = get_pair_meal(db, membership, match_id, pair_meal_id)
    pair_meal.status = PairMealStatus.CANCELLED
    db.commit()
    logger.info("User %s cancelled pair meal %s", membership.user_id, pair_meal_id)


def pair_meal_payload(pair_meal: PairMeal) -> dict:
    place = None
    if pair_meal.place_name:
        place = {
            "name": pair_meal.place_name,
            "address": pair_meal.place_address,
            "latitude": pair_meal.place_latitude,
            "longitude": pair_meal.place_longitude,
            "google_place_id": pair_meal.place_google_place_id,
        }
    return {
        "id": pair_meal.pair_meal_id,
        "date": pair_meal.date,
        "time_band": pair_meal.time_band,
        "meeting_time": dates.format_minutes(pair_meal.meeting_time_minutes),
        "place": place,
        "restaurant_name": pair_meal.restaurant_name,
        "restaurant_address": pair_meal.restaurant_address,
        "status": pair_meal.status,
    }
