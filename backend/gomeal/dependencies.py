"""Request-scoped dependencies built on the current user."""
import hmac
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from gomeal.config import Settings, get_settings
from gomeal.database import get_db
from gomeal.models.community import CommunityMembership
from gomeal.models.user import User
from gomeal.security import get_current_user, require_member_user
from gomeal.services.membership_service import require_approved_membership


def get_membership(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CommunityMembership:
    """The caller's approved membership, or a JOIN_REQUIRED error."""
    return require_approved_membership(db, current_user.user_id)


def get_member_membership(
    current_user: User = Depends(require_member_user),
    db: Session = Depends(get_db),
) -> CommunityMembership:
    """Like get_membership, but admin accounts are refused."""
    return require_approved_membership(db, current_user.user_id)


def require_cron_secret(
    x_cron_secret: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Gate for scheduler-triggered jobs. Without a configured secret only non-production accepts calls."""
    if not settings.CRON_SECRET:
        if settings.is_production:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cron secret is not configured")
        return
    if not x_cron_secret or not hmac.compare_digest(x_cron_secret, settings.CRON_SECRET):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid cron secret")
