"""Like and super-like API routes."""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from gomeal.config import Settings, get_settings
from gomeal.database import get_db
from gomeal.dependencies import get_membership
from gomeal.models.community import CommunityMembership
from gomeal.models.like import SuperLike
from gomeal.notifications.dispatcher import LineNotifier, get_notifier
from gomeal.schemas.like import (
    CandidateOut, LikeRequest, LikeResult, LikeUpdateRequest, NextCandidateOut,
    SuperLikeOut, SuperLikeRequest, SuperLikeResult, SuperLikesOut,
)
from gomeal.services import match_service
from gomeal.services.match_service import LikeOutcome
from gomeal.services.notification_service import match_requests

logger = logging.getLogger(__name__)
router = APIRouter()
super_likes_router = APIRouter()


def like_result(outcome: LikeOutcome, user_id: str) -> LikeResult:
    if outcome.match is None:
        return LikeResult(matched=False)
    partner = outcome.match.partner_of(user_id)
    profile = partner.profile if partner else None
    return LikeResult(
        matched=True,
        match_id=outcome.match.match_id,
        matched_at=outcome.match.created_at,
        partner_name=profile.name if profile else "",
        partner_bio=profile.bio if profile else None,
        partner_favorite_meals=(profile.favorite_meals if profile else None) or [],
    )


def notify_new_match(outcome: LikeOutcome, notifier: LineNotifier) -> None:
    if outcome.match_created and outcome.match is not None:
        notifier.send_many(match_requests(outcome.match))


@router.post("", response_model=LikeResult)
def submit_like(
    payload: LikeRequest,
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
    notifier: LineNotifier = Depends(get_notifier),
):
    outcome = match_service.submit_like(db, membership, payload.target_user_id, payload.answer)
    notify_new_match(outcome, notifier)
    return like_result(outcome, membership.user_id)


@router.get("/next-candidate", response_model=NextCandidateOut)
def next_candidate(
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = match_service.pick_next_candidate(db, membership, settings.INCLUDE_SEED_USERS)
    if user is None:
        return NextCandidateOut(candidate=None)
    profile = user.profile
    return NextCandidateOut(candidate=CandidateOut(
        id=user.user_id,
        name=profile.name if profile else "",
        favorite_meals=(profile.favorite_meals if profile else None) or [],
        hobbies=(profile.hobbies if profile else None) or [],
        main_area=profile.main_area if profile else None,
        bio=profile.bio if profile else None,
        profile_image_url=profile.profile_image_url if profile else None,
    ))


@router.patch("/{target_user_id}", response_model=LikeResult)
def update_like(
    target_user_id: str,
    payload: LikeUpdateRequest,
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
    notifier: LineNotifier = Depends(get_notifier),
):
    outcome = match_service.update_like(db, membership, target_user_id, payload.answer)
    notify_new_match(outcome, notifier)
    return like_result(outcome, membership.user_id)


def super_like_out(super_like: SuperLike) -> SuperLikeOut:
    return SuperLikeOut(
        id=super_like.super_like_id,
        from_user_id=super_like.from_user_id,
        to_user_id=super_like.to_user_id,
        created_at=super_like.created_at,
    )


@super_likes_router.get("", response_model=SuperLikesOut)
def list_super_likes(membership: CommunityMembership = Depends(get_membership), db: Session = Depends(get_db)):
    rows = db.query(SuperLike).filter(SuperLike.community_id == membership.community_id)
    sent = rows.filter(SuperLike.from_user_id == membership.user_id).first()
    received = rows.filter(SuperLike.to_user_id == membership.user_id).order_by(SuperLike.created_at.desc()).all()
    return SuperLikesOut(
        sent=super_like_out(sent) if sent else None,
        received=[super_like_out(s) for s in received],
    )


@super_likes_router.post("", response_model=SuperLikeResult)
def submit_super_like(
    payload: SuperLikeRequest,
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
    notifier: LineNotifier = Depends(get_notifier),
):
    super_like, outcome = match_service.submit_super_like(db, membership, payload.target_user_id)
    notify_new_match(outcome, notifier)
    return SuperLikeResult(super_like=super_like_out(super_like), like=like_result(outcome, membership.user_id))


@super_likes_router.delete("/{target_user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_super_like(
    target_user_id: str,
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
):
    match_service.delete_super_like(db, membership, target_user_id)
