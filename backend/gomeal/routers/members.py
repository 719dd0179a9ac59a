"""Community member listing and relationship board."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gomeal.config import Settings, get_settings
from gomeal.database import get_db
from gomeal.models.user import User
from gomeal.schemas.like import MembersOut, RelationshipsOut
from gomeal.security import get_current_user
from gomeal.services import relationship_service
from gomeal.services.availability_service import REQUIRED_AVAILABLE_SLOTS, count_available_slots
from gomeal.services.membership_service import get_approved_membership

router = APIRouter()


@router.get("/", response_model=MembersOut)
def list_members(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    membership = get_approved_membership(db, current_user.user_id)
    if membership is None:
        return MembersOut(members=[])
    meets = count_available_slots(db, current_user.user_id) >= REQUIRED_AVAILABLE_SLOTS
    members = relationship_service.list_members(db, membership, settings.INCLUDE_SEED_USERS, meets)
    return {"members": members}


@router.get("/relationships", response_model=RelationshipsOut)
def relationships(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if current_user.is_admin:
        return RelationshipsOut()
    membership = get_approved_membership(db, current_user.user_id)
    if membership is None:
        return RelationshipsOut()
    return relationship_service.build_relationships(db, membership)
