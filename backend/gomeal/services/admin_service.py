"""Admin-only member management."""
import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from gomeal.models.availability import AvailabilitySlot
from gomeal.models.community import CommunityMembership, MembershipStatus
from gomeal.models.group_meal import GroupMeal, GroupMealParticipant, GroupMealInvitation, GroupMealChatMessage
from gomeal.models.pair_meal import PairMeal
from gomeal.models.user import User
from gomeal.services.match_service import delete_pair_state

logger = logging.getLogger(__name__)


def list_join_requests(db: Session) -> list[CommunityMembership]:
    return (
        db.query(CommunityMembership)
        .filter(CommunityMembership.status == MembershipStatus.pending)
        .order_by(CommunityMembership.created_at.asc())
        .all()
    )


def get_membership(db: Session, membership_id: str) -> CommunityMembership:
    membership = db.query(CommunityMembership).filter(CommunityMembership.membership_id == membership_id).first()
    if membership is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Join request not found")
    return membership


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def promote(db: Session, user_id: str) -> User:
    user = get_user(db, user_id)
    user.is_admin = True
    db.commit()
    db.refresh(user)
    logger.info("Promoted user %s to admin", user_id)
    return user


def _delete_pair_meals_of(db: Session, membership_ids: list[str]) -> None:
    if not membership_ids:
        return
    db.query(PairMeal).filter(
        or_(
            PairMeal.member_a_id.in_(membership_ids),
            PairMeal.member_b_id.in_(membership_ids),
            PairMeal.created_by_member_id.in_(membership_ids),
        )
    ).delete(synchronize_session=False)


def remove_member(db: Session, user_id: str, community_id: Optional[str] = None) -> int:
    """Drop a user's memberships plus likes and matches in those communities. Returns memberships removed."""
    get_user(db, user_id)
    query = db.query(CommunityMembership).filter(CommunityMembership.user_id == user_id)
    if community_id:
        query = query.filter(CommunityMembership.community_id == community_id)
    memberships = query.all()
    if not memberships:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Membership not found")

    _delete_pair_meals_of(db, [m.membership_id for m in memberships])
    for membership in memberships:
        delete_pair_state(db, membership.community_id, user_id)
        db.query(GroupMeal).filter(GroupMeal.host_membership_id == membership.membership_id).update(
            {GroupMeal.host_membership_id: None}, synchronize_session=False
        )
        db.delete(membership)
    db.commit()
    logger.info("Removed user %s from %d community(ies)", user_id, len(memberships))
    return len(memberships)


def delete_user(db: Session, user_id: str) -> None:
    """Delete a user and every row that references them."""
    user = get_user(db, user_id)
    memberships = db.query(CommunityMembership).filter(CommunityMembership.user_id == user_id).all()
    _delete_pair_meals_of(db, [m.membership_id for m in memberships])
    for membership in memberships:
        delete_pair_state(db, membership.community_id, user_id)

    for meal in db.query(GroupMeal).filter(GroupMeal.host_user_id == user_id).all():
        db.delete(meal)
    db.flush()
    db.query(GroupMealChatMessage).filter(GroupMealChatMessage.sender_user_id == user_id).delete(
        synchronize_session=False
    )
    db.query(GroupMealInvitation).filter(GroupMealInvitation.user_id == user_id).delete(synchronize_session=False)
    db.query(GroupMealParticipant).filter(GroupMealParticipant.user_id == user_id).delete(synchronize_session=False)
    db.query(AvailabilitySlot).filter(AvailabilitySlot.user_id == user_id).delete(synchronize_session=False)
    # Profile and memberships cascade from the user
    db.delete(user)
    db.commit()
    logger.info("Deleted user %s", user_id)


def delete_seed_admin(db: Session, email: str) -> bool:
    if not email:
        return False
    admin = db.query(User).filter(User.email == email.lower(), User.is_admin.is_(True)).first()
    if admin is None:
        return False
    delete_user(db, admin.user_id)
    return True
