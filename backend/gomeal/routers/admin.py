"""Admin API routes. Everything except /login requires an admin token."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from gomeal.config import Settings, get_settings
from gomeal.database import get_db
from gomeal.models.user import User
from gomeal.routers.auth import user_out
from gomeal.schemas.auth import LoginRequest, TokenResponse, UserOut
from gomeal.schemas.community import (
    JoinRequestOut, MembershipDecisionOut, PromoteRequest, RemoveMemberOut, RemoveMemberRequest,
)
from gomeal.security import create_access_token, require_admin, set_auth_cookie, verify_password
from gomeal.services import admin_service, membership_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/login", response_model=TokenResponse)
def admin_login(
    payload: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only")
    token = create_access_token(user, settings)
    set_auth_cookie(response, token, settings)
    logger.info("Admin %s logged in", user.user_id)
    return TokenResponse(token=token, user=user_out(user))


@router.get("/join-requests", response_model=list[JoinRequestOut])
def list_join_requests(_: User = Depends(require_admin), db: Session = Depends(get_db)):
    return [
        JoinRequestOut(
            id=m.membership_id,
            user_id=m.user_id,
            community_id=m.community_id,
            name=m.user.display_name,
            email=m.user.email,
            requested_at=m.created_at,
        )
        for m in admin_service.list_join_requests(db)
    ]


@router.post("/join-requests/{membership_id}/approve", response_model=MembershipDecisionOut)
def approve_join_request(membership_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    membership = membership_service.approve_membership(db, admin_service.get_membership(db, membership_id), True)
    logger.info("Admin %s approved membership %s", admin.user_id, membership_id)
    return MembershipDecisionOut(id=membership.membership_id, status="APPROVED")


@router.post("/join-requests/{membership_id}/reject", response_model=MembershipDecisionOut)
def reject_join_request(membership_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    membership = membership_service.approve_membership(db, admin_service.get_membership(db, membership_id), False)
    logger.info("Admin %s rejected membership %s", admin.user_id, membership_id)
    return MembershipDecisionOut(id=membership.membership_id, status="REJECTED")


@router.post("/promote", response_model=UserOut)
def promote(payload: PromoteRequest, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    return user_out(admin_service.promote(db, payload.user_id))


@router.post("/remove-member", response_model=RemoveMemberOut)
def remove_member(payload: RemoveMemberRequest, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    removed = admin_service.remove_member(db, payload.user_id, payload.community_id)
    return RemoveMemberOut(removed=removed)


@router.delete("/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_member(user_id: str, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    if user_id == admin.user_id:
        raise HTTPException(status_code=400, detail="You cannot delete yourself")
    admin_service.delete_user(db, user_id)


@router.delete("/seed-admin", status_code=status.HTTP_204_NO_CONTENT)
def delete_seed_admin(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if settings.SEED_ADMIN_EMAIL.lower() == admin.email:
        raise HTTPException(status_code=400, detail="The seed admin cannot delete itself")
    if not admin_service.delete_seed_admin(db, settings.SEED_ADMIN_EMAIL):
        raise HTTPException(status_code=404, detail="Seed admin not found")
