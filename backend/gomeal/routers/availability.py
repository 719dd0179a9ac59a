"""Weekly availability API routes. Admin accounts are refused."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from gomeal.database import get_db
from gomeal.dependencies import get_member_membership
from gomeal.models.community import CommunityMembership
from gomeal.models.user import User
from gomeal.schemas.availability import AvailabilityStatusOut, OverlapSlot, PairGridCell, SlotIn, SlotOut
from gomeal.security import require_member_user
from gomeal.services import availability_service
from gomeal.services.availability_service import REQUIRED_AVAILABLE_SLOTS, SlotInput
from gomeal.services.match_service import find_match
from gomeal.services.membership_service import ensure_same_community

router = APIRouter()


@router.get("/", response_model=list[SlotOut])
def get_availability(current_user: User = Depends(require_member_user), db: Session = Depends(get_db)):
    return availability_service.list_slots(db, current_user.user_id)


@router.put("/", response_model=list[SlotOut])
def replace_availability(
    slots: list[SlotIn],
    current_user: User = Depends(require_member_user),
    db: Session = Depends(get_db),
):
    inputs = [SlotInput(weekday=s.weekday, time_slot=s.time_slot, status=s.status) for s in slots]
    return availability_service.replace_slots(db, current_user.user_id, inputs)


@router.get("/status", response_model=AvailabilityStatusOut)
def availability_status(current_user: User = Depends(require_member_user), db: Session = Depends(get_db)):
    count = availability_service.count_available_slots(db, current_user.user_id)
    return AvailabilityStatusOut(
        available_count=count,
        required=REQUIRED_AVAILABLE_SLOTS,
        meets_requirement=count >= REQUIRED_AVAILABLE_SLOTS,
    )


@router.get("/pair/{partner_user_id}", response_model=list[PairGridCell])
def pair_availability(
    partner_user_id: str,
    membership: CommunityMembership = Depends(get_member_membership),
    db: Session = Depends(get_db),
):
    ensure_same_community(db, membership, partner_user_id, self_detail="Choose another member to compare availability with")
    return availability_service.pair_grid(db, membership.user_id, partner_user_id)


@router.get("/overlap/{partner_user_id}", response_model=list[OverlapSlot])
def overlap_availability(
    partner_user_id: str,
    membership: CommunityMembership = Depends(get_member_membership),
    db: Session = Depends(get_db),
):
    """Slots both sides marked AVAILABLE; only between matched members."""
    if find_match(db, membership.community_id, membership.user_id, partner_user_id) is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not matched with this member")
    return [
        OverlapSlot(weekday=weekday, time_slot=time_slot)
        for weekday, time_slot in availability_service.overlap(db, membership.user_id, partner_user_id)
    ]
