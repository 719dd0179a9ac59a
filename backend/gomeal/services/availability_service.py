"""Availability service: weekly slot patterns, pair grids and auto-grouping pools."""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from gomeal.exceptions import InsufficientAvailabilityError
from gomeal.models.availability import AvailabilitySlot, AvailabilityStatus, Weekday, TimeSlot, WEEKDAYS
from gomeal.models.community import CommunityMembership, MembershipStatus
from gomeal.models.user import Profile

logger = logging.getLogger(__name__)

REQUIRED_AVAILABLE_SLOTS = 3
TIME_SLOTS = [TimeSlot.DAY, TimeSlot.NIGHT]


@dataclass
class SlotInput:
    weekday: Weekday
    time_slot: TimeSlot
    status: AvailabilityStatus


@dataclass
class AutoGroupCandidate:
    user_id: str
    membership_id: str
    community_id: str
    availability: AvailabilityStatus
    profile: Optional[Profile] = None
    line_user_id: Optional[str] = None


def _slot_sort_key(slot: AvailabilitySlot) -> tuple[int, int]:
    return WEEKDAYS.index(slot.weekday), TIME_SLOTS.index(slot.time_slot)


def list_slots(db: Session, user_id: str) -> list[AvailabilitySlot]:
    slots = db.query(AvailabilitySlot).filter(AvailabilitySlot.user_id == user_id).all()
    return sorted(slots, key=_slot_sort_key)


def replace_slots(db: Session, user_id: str, slots: list[SlotInput]) -> list[AvailabilitySlot]:
    """Replace the user's whole weekly pattern. Duplicates are rejected before anything is deleted."""
    seen: set[tuple[Weekday, TimeSlot]] = set()
    for slot in slots:
        key = (slot.weekday, slot.time_slot)
        if key in seen:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="weekday and timeSlot combinations must be unique",
            )
        seen.add(key)

    db.query(AvailabilitySlot).filter(AvailabilitySlot.user_id == user_id).delete(synchronize_session=False)
    for slot in slots:
        db.add(AvailabilitySlot(user_id=user_id, weekday=slot.weekday, time_slot=slot.time_slot, status=slot.status))
    db.commit()
    logger.info("Replaced availability for user %s (%d slots)", user_id, len(slots))
    return list_slots(db, user_id)


def upsert_slot(
    db: Session, user_id: str, weekday: Weekday, time_slot: TimeSlot, slot_status: AvailabilityStatus
) -> AvailabilitySlot:
    slot = (
        db.query(AvailabilitySlot)
        .filter(
            AvailabilitySlot.user_id == user_id,
            AvailabilitySlot.weekday == weekday,
            AvailabilitySlot.time_slot == time_slot,
        )
        .first()
    )
    if slot is None:
        slot = AvailabilitySlot(user_id=user_id, weekday=weekday, time_slot=time_slot, status=slot_status)
        db.add(slot)
    else:
        slot.status = slot_status
    db.commit()
    db.refresh(slot)
    logger.info("Set %s %s availability of user %s to %s", weekday.value, time_slot.value, user_id, slot_status.value)
    return slot


def count_available_slots(db: Session, user_id: str) -> int:
    return (
        db.query(AvailabilitySlot)
        .filter(AvailabilitySlot.user_id == user_id, AvailabilitySlot.status == AvailabilityStatus.AVAILABLE)
        .count()
    )


def ensure_sufficient_availability(db: Session, user_id: str) -> int:
    count = count_available_slots(db, user_id)
    if count < REQUIRED_AVAILABLE_SLOTS:
        raise InsufficientAvailabilityError(count, REQUIRED_AVAILABLE_SLOTS)
    return count


def _available_keys(db: Session, user_id: str) -> set[tuple[Weekday, TimeSlot]]:
    rows = (
        db.query(AvailabilitySlot)
        .filter(AvailabilitySlot.user_id == user_id, AvailabilitySlot.status == AvailabilityStatus.AVAILABLE)
        .all()
    )
    return {(row.weekday, row.time_slot) for row in rows}


def pair_grid(db: Session, self_user_id: str, partner_user_id: str) -> list[dict]:
    """Full 7x2 weekday/time-slot grid; missing rows count as unavailable."""
    mine = _available_keys(db, self_user_id)
    theirs = _available_keys(db, partner_user_id)
    grid = []
    for weekday in WEEKDAYS:
        for time_slot in TIME_SLOTS:
            key = (weekday, time_slot)
            grid.append({
                "weekday": weekday,
                "time_slot": time_slot,
                "self_available": key in mine,
                "partner_available": key in theirs,
                "both_available": key in mine and key in theirs,
            })
    return grid


def overlap(db: Session, self_user_id: str, partner_user_id: str) -> list[tuple[Weekday, TimeSlot]]:
    theirs = _available_keys(db, partner_user_id)
    return sorted(
        (key for key in _available_keys(db, self_user_id) if key in theirs),
        key=lambda key: (WEEKDAYS.index(key[0]), TIME_SLOTS.index(key[1])),
    )


def availability_split(
    db: Session, community_id: str, weekday: Weekday, time_slot: TimeSlot
) -> tuple[list[AutoGroupCandidate], list[AutoGroupCandidate]]:
    """Approved members of a community split into (AVAILABLE, MEET_ONLY) for one slot."""
    rows = (
        db.query(CommunityMembership, AvailabilitySlot)
        .join(AvailabilitySlot, AvailabilitySlot.user_id == CommunityMembership.user_id)
        .filter(
            CommunityMembership.community_id == community_id,
            CommunityMembership.status == MembershipStatus.approved,
            AvailabilitySlot.weekday == weekday,
            AvailabilitySlot.time_slot == time_slot,
        )
        .order_by(CommunityMembership.created_at)
        .all()
    )
    available: list[AutoGroupCandidate] = []
    meet_only: list[AutoGroupCandidate] = []
    for membership, slot in rows:
        if membership.user.is_admin:
            continue
        candidate = AutoGroupCandidate(
            user_id=membership.user_id,
            membership_id=membership.membership_id,
            community_id=community_id,
            availability=slot.status,
            profile=membership.user.profile,
            line_user_id=membership.user.line_user_id,
        )
        if slot.status == AvailabilityStatus.AVAILABLE:
            available.append(candidate)
        elif slot.status == AvailabilityStatus.MEET_ONLY:
            meet_only.append(candidate)
    return available, meet_only


def is_available_for_slot(db: Session, user_ids: list[str], weekday: Weekday, time_slot: TimeSlot) -> set[str]:
    if not user_ids:
        return set()
    rows = (
        db.query(AvailabilitySlot.user_id)
        .filter(
            AvailabilitySlot.user_id.in_(user_ids),
            AvailabilitySlot.weekday == weekday,
            AvailabilitySlot.time_slot == time_slot,
            AvailabilitySlot.status == AvailabilityStatus.AVAILABLE,
        )
        .all()
    )
    return {row[0] for row in rows}
