"""Match and pair-meal API routes."""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gomeal.database import get_db
from gomeal.dependencies import get_membership
from gomeal.models.community import CommunityMembership
from gomeal.models.like import Match
from gomeal.models.pair_meal import PairMealStatus
from gomeal.schemas.match import (
    MatchDetailOut, MatchOut, PairMealCreate, PairMealCreated, PairMealOut, PairMealUpdate,
)
from gomeal.services import match_service, pair_meal_service
from gomeal.services.availability_service import ensure_sufficient_availability

logger = logging.getLogger(__name__)
router = APIRouter()


def match_out(match: Match, user_id: str) -> dict:
    partner = match.partner_of(user_id)
    profile = partner.profile if partner else None
    return {
        "id": match.match_id,
        "partner_user_id": match.partner_id(user_id),
        "partner_name": profile.name if profile else "",
        "partner_favorite_meals": (profile.favorite_meals if profile else None) or [],
        "profile_image_url": profile.profile_image_url if profile else None,
        "matched_at": match.created_at,
        "partner_bio": profile.bio if profile else None,
    }


@router.get("/", response_model=list[MatchOut])
def list_matches(membership: CommunityMembership = Depends(get_membership), db: Session = Depends(get_db)):
    ensure_sufficient_availability(db, membership.user_id)
    matches = match_service.list_matches_for_user(db, membership.community_id, membership.user_id)
    return [match_out(m, membership.user_id) for m in matches]


@router.get("/{match_id}", response_model=MatchDetailOut)
def get_match(match_id: str, membership: CommunityMembership = Depends(get_membership), db: Session = Depends(get_db)):
    match = match_service.get_match_for_member(db, membership, match_id)
    detail = match_out(match, membership.user_id)
    detail["pair_meals"] = [
        pair_meal_service.pair_meal_payload(p)
        for p in match.pair_meals
        if p.status != PairMealStatus.CANCELLED
    ]
    return detail


@router.post("/{match_id}/pair-meals", response_model=PairMealCreated, status_code=status.HTTP_201_CREATED)
def create_pair_meal(
    match_id: str,
    payload: PairMealCreate,
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
):
    pair_meal = pair_meal_service.create_pair_meal(db, membership, match_id, payload.to_input())
    return PairMealCreated(pair_meal_id=pair_meal.pair_meal_id)


@router.patch("/{match_id}/pair-meals/{pair_meal_id}", response_model=PairMealOut)
def update_pair_meal(
    match_id: str,
    pair_meal_id: str,
    payload: PairMealUpdate,
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
):
    pair_meal = pair_meal_service.update_pair_meal(db, membership, match_id, pair_meal_id, payload.to_changes())
    return pair_meal_service.pair_meal_payload(pair_meal)


@router.delete("/{match_id}/pair-meals/{pair_meal_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_pair_meal(
    match_id: str,
    pair_meal_id: str,
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
):
    pair_meal_service.cancel_pair_meal(db, membership, match_id, pair_meal_id)
