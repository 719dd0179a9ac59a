"""Community API routes."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from gomeal.config import Settings, get_settings
from gomeal.database import get_db
from gomeal.models.user import User
from gomeal.schemas.community import CommunityStatusOut, JoinCommunityRequest, MembershipOut, ReactionCountsOut
from gomeal.security import get_current_user
from gomeal.services import membership_service, relationship_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/join", response_model=MembershipOut)
def join(
    payload: JoinCommunityRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    membership = membership_service.join_community(
        db, current_user, payload.community_name, payload.community_code, settings.AUTO_APPROVE_MEMBERS
    )
    return MembershipOut(
        id=membership.membership_id,
        community_id=membership.community_id,
        community_name=membership.community.name,
        status=membership_service.community_status_label(membership),
    )


@router.get("/status", response_model=CommunityStatusOut)
def community_status(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    membership = membership_service.get_approved_membership(db, current_user.user_id)
    if membership is None:
        membership = membership_service.get_latest_membership(db, current_user.user_id)
    if membership is None:
        return CommunityStatusOut(status="UNAPPLIED")
    return CommunityStatusOut(
        status=membership_service.community_status_label(membership),
        community_id=membership.community_id,
        community_name=membership.community.name,
    )


@router.get("/{community_id}/me/reaction-counts", response_model=ReactionCountsOut)
def my_reaction_counts(
    community_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Hearts and stars the caller has received in a community."""
    if membership_service.get_approved_member(db, community_id, current_user.user_id) is None:
        raise HTTPException(status_code=404, detail="Community not found")
    return relationship_service.reaction_counts(db, community_id, current_user.user_id)
