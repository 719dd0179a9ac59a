"""Community membership gate and community bootstrap."""
import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from gomeal.config import Settings
from gomeal.exceptions import MembershipRequiredError
from gomeal.models.community import Community, CommunityMembership, MembershipStatus
from gomeal.models.user import User, Profile
from gomeal.security import hash_password

logger = logging.getLogger(__name__)


def get_latest_membership(db: Session, user_id: str) -> Optional[CommunityMembership]:
    return (
        db.query(CommunityMembership)
        .filter(CommunityMembership.user_id == user_id)
        .order_by(CommunityMembership.created_at.desc())
        .first()
    )


def get_approved_membership(db: Session, user_id: str) -> Optional[CommunityMembership]:
    return (
        db.query(CommunityMembership)
        .filter(CommunityMembership.user_id == user_id, CommunityMembership.status == MembershipStatus.approved)
        .order_by(CommunityMembership.created_at.desc())
        .first()
    )


def require_approved_membership(db: Session, user_id: str) -> CommunityMembership:
    membership = get_approved_membership(db, user_id)
    if membership is None:
        raise MembershipRequiredError()
    return membership


def get_approved_member(db: Session, community_id: str, user_id: str) -> Optional[CommunityMembership]:
    return (
        db.query(CommunityMembership)
        .filter(
            CommunityMembership.community_id == community_id,
            CommunityMembership.user_id == user_id,
            CommunityMembership.status == MembershipStatus.approved,
        )
        .first()
    )


def ensure_same_community(
    db: Session, membership: CommunityMembership, target_user_id: str, self_detail: str = "You cannot answer yourself"
) -> CommunityMembership:
    """Target must be a different, approved member of the caller's community."""
    if membership.user_id == target_user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=self_detail)
    target = get_approved_member(db, membership.community_id, target_user_id)
    if target is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Target user is not an approved member of your community",
        )
    return target


def community_status_label(membership: Optional[CommunityMembership]) -> str:
    if membership is None:
        return "UNAPPLIED"
    return {
        MembershipStatus.approved: "APPROVED",
        MembershipStatus.pending: "PENDING",
        MembershipStatus.rejected: "REJECTED",
    }[membership.status]


def join_community(
    db: Session, user: User, community_name: str, community_code: str, auto_approve: bool
) -> CommunityMembership:
    """Request membership with an invite code; the community name must match the code."""
    community = db.query(Community).filter(Community.invite_code == community_code).first()
    if not community:
        raise HTTPException(status_code=404, detail="Community not found")
    if community.name.lower() != community_name.strip().lower():
        raise HTTPException(status_code=400, detail="Community name/code mismatch")

    next_status = MembershipStatus.approved if auto_approve else MembershipStatus.pending
    membership = (
        db.query(CommunityMembership)
        .filter(CommunityMembership.user_id == user.user_id, CommunityMembership.community_id == community.community_id)
        .first()
    )
    if membership is None:
        membership = CommunityMembership(
            user_id=user.user_id, community_id=community.community_id, status=next_status
        )
        db.add(membership)
    elif membership.status != MembershipStatus.approved:
        membership.status = next_status
    db.commit()
    db.refresh(membership)
    logger.info("User %s joined community %s (%s)", user.user_id, community.community_id, membership.status.value)
    return membership


def approve_membership(db: Session, membership: CommunityMembership, approved: bool) -> CommunityMembership:
    membership.status = MembershipStatus.approved if approved else MembershipStatus.rejected
    db.commit()
    db.refresh(membership)
    logger.info("Membership %s set to %s", membership.membership_id, membership.status.value)
    return membership


def get_default_community(db: Session, settings: Settings) -> Optional[Community]:
    return db.query(Community).filter(Community.invite_code == settings.DEFAULT_COMMUNITY_CODE).first()


def ensure_default_community(db: Session, settings: Settings) -> Community:
    community = get_default_community(db, settings)
    if community is None:
        community = Community(name=settings.DEFAULT_COMMUNITY_NAME, invite_code=settings.DEFAULT_COMMUNITY_CODE)
        db.add(community)
        logger.info("Created default community %s", settings.DEFAULT_COMMUNITY_NAME)
    elif community.name != settings.DEFAULT_COMMUNITY_NAME:
        community.name = settings.DEFAULT_COMMUNITY_NAME
    db.commit()
    db.refresh(community)
    return community


def ensure_seed_admin(db: Session, settings: Settings) -> Optional[User]:
    if not settings.ENABLE_SEED_ADMIN:
        return None
    if not settings.SEED_ADMIN_EMAIL or not settings.SEED_ADMIN_PASSWORD:
        logger.warning("ENABLE_SEED_ADMIN is set but SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD are missing")
        return None

    email = settings.SEED_ADMIN_EMAIL.lower()
    admin = db.query(User).filter(User.email == email).first()
    if admin is None:
        admin = User(email=email, password_hash=hash_password(settings.SEED_ADMIN_PASSWORD), is_admin=True)
        admin.profile = Profile(name="Admin")
        db.add(admin)
        logger.info("Created seed admin %s", email)
    else:
        admin.is_admin = True
    db.commit()
    db.refresh(admin)
    return admin
