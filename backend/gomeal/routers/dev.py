"""Development helpers. Hidden in production."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from gomeal.config import Settings, get_settings
from gomeal.database import get_db
from gomeal.models.community import CommunityMembership, MembershipStatus
from gomeal.models.user import User
from gomeal.security import get_current_user
from gomeal.services import membership_service
from gomeal.services.match_service import delete_pair_state

logger = logging.getLogger(__name__)


def ensure_dev_enabled(settings: Settings = Depends(get_settings)) -> None:
    if settings.is_production:
        raise HTTPException(status_code=404, detail="Not found")


router = APIRouter(dependencies=[Depends(ensure_dev_enabled)])


@router.post("/approve-me", status_code=status.HTTP_204_NO_CONTENT)
def approve_me(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    community = membership_service.ensure_default_community(db, settings)
    membership_service.join_community(db, current_user, community.name, community.invite_code, auto_approve=True)


@router.post("/reset-status", status_code=status.HTTP_204_NO_CONTENT)
def reset_status(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    db.query(CommunityMembership).filter(CommunityMembership.user_id == current_user.user_id).delete(
        synchronize_session=False
    )
    db.commit()
    logger.info("Reset memberships of user %s", current_user.user_id)


@router.post("/reset-like-state", status_code=status.HTTP_204_NO_CONTENT)
def reset_like_state(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    memberships = db.query(CommunityMembership).filter(
        CommunityMembership.user_id == current_user.user_id,
        CommunityMembership.status == MembershipStatus.approved,
    ).all()
    for membership in memberships:
        delete_pair_state(db, membership.community_id, current_user.user_id)
    db.commit()
    logger.info("Reset like state of user %s", current_user.user_id)
