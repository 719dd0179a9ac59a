"""Group-meal lifecycle: capacity bookkeeping and participant transitions.

Every mutation follows the same shape inside one session transaction:
lock the meal row, validate, upsert participant rows, re-sync the aggregate
status, commit. Active seats are INVITED, JOINED and LATE; the host always
holds a JOINED seat and can never decline or cancel it.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from gomeal.exceptions import GroupMealNotFoundError, NoRemainingCapacityError
from gomeal.models.community import CommunityMembership, MembershipStatus
from gomeal.models.group_meal import (
    GroupMeal, GroupMealParticipant, GroupMealInvitation, GroupMealStatus, GroupMealMode, GroupMealBudget,
    ParticipantStatus, ACTIVE_STATUSES, ATTENDING_STATUSES, LINE_RESPONSE_STATUSES,
)
from gomeal.models.pair_meal import TimeBand
from gomeal.models.user import User
from gomeal.services import dates
from gomeal.services.availability_service import is_available_for_slot

logger = logging.getLogger(__name__)


@dataclass
class PlaceInput:
    name: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    google_place_id: Optional[str] = None


@dataclass
class GroupMealInput:
    """Normalized create request, whichever body shape it arrived in."""

    date: date
    time_band: TimeBand
    capacity: int
    title: str = ""
    meeting_time: Optional[str] = None
    budget: Optional[GroupMealBudget] = None
    mode: GroupMealMode = GroupMealMode.REAL
    meet_url: Optional[str] = None
    place: Optional[PlaceInput] = None


def budget_from_value(value: Any) -> Optional[GroupMealBudget]:
    """Map a yen amount or enum name to a budget bucket."""
    if value is None:
        return None
    if isinstance(value, GroupMealBudget):
        return value
    if isinstance(value, str):
        if value in GroupMealBudget.__members__:
            return GroupMealBudget(value)
        try:
            value = float(value)
        except ValueError:
            return None
    if value <= 1000:
        return GroupMealBudget.UNDER_1000
    if value <= 1500:
        return GroupMealBudget.UNDER_1500
    if value <= 2000:
        return GroupMealBudget.UNDER_2000
    return GroupMealBudget.OVER_2000


# --- lookups ---------------------------------------------------------------

def get_group_meal(db: Session, group_meal_id: str) -> GroupMeal:
    meal = db.query(GroupMeal).filter(GroupMeal.group_meal_id == group_meal_id).first()
    if meal is None:
        raise GroupMealNotFoundError()
    return meal


def lock_group_meal(db: Session, group_meal_id: str) -> GroupMeal:
    """Load the meal with a row lock so concurrent seat changes serialize."""
    meal = (
        db.query(GroupMeal)
        .filter(GroupMeal.group_meal_id == group_meal_id)
        .with_for_update()
        .first()
    )
    if meal is None:
        raise GroupMealNotFoundError()
    return meal


def get_participant(db: Session, group_meal_id: str, user_id: str) -> Optional[GroupMealParticipant]:
    return (
        db.query(GroupMealParticipant)
        .filter(GroupMealParticipant.group_meal_id == group_meal_id, GroupMealParticipant.user_id == user_id)
        .first()
    )


def is_host(meal: GroupMeal, user_id: str) -> bool:
    return meal.host_user_id == user_id


def can_manage(meal: GroupMeal, user: User) -> bool:
    return bool(user.is_admin) or meal.host_user_id == user.user_id


def ensure_same_community(meal: GroupMeal, membership: CommunityMembership) -> None:
    if meal.community_id != membership.community_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This group meal belongs to another community")


def ensure_host(meal: GroupMeal, membership: CommunityMembership) -> None:
    ensure_same_community(meal, membership)
    if not is_host(meal, membership.user_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the host can do this")


def ensure_not_closed(meal: GroupMeal) -> None:
    if meal.status == GroupMealStatus.CLOSED:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This group meal is closed")


# --- capacity --------------------------------------------------------------

def count_active_participants(db: Session, group_meal_id: str) -> int:
    return (
        db.query(GroupMealParticipant)
        .filter(
            GroupMealParticipant.group_meal_id == group_meal_id,
            GroupMealParticipant.status.in_(ACTIVE_STATUSES),
        )
        .count()
    )


def remaining_capacity(db: Session, meal: GroupMeal) -> int:
    return max(meal.capacity - count_active_participants(db, meal.group_meal_id), 0)


def sync_group_meal_status(db: Session, meal: GroupMeal) -> GroupMealStatus:
    """Recompute OPEN/FULL from active seats. CLOSED is terminal."""
    if meal.status == GroupMealStatus.CLOSED:
        return meal.status
    db.flush()
    active = count_active_participants(db, meal.group_meal_id)
    next_status = GroupMealStatus.FULL if active >= meal.capacity else GroupMealStatus.OPEN
    if next_status != meal.status:
        logger.info("Group meal %s status %s -> %s (%d/%d)",
                    meal.group_meal_id, meal.status.value, next_status.value, active, meal.capacity)
        meal.status = next_status
    return next_status


def _set_participant_status(
    db: Session, meal: GroupMeal, user_id: str, new_status: ParticipantStatus,
    participant: Optional[GroupMealParticipant] = None,
) -> GroupMealParticipant:
    if participant is None:
        participant = GroupMealParticipant(group_meal_id=meal.group_meal_id, user_id=user_id, status=new_status)
        db.add(participant)
    else:
        participant.status = new_status
    return participant


# --- create / edit / delete -----------------------------------------------

def create_group_meal(db: Session, user: User, membership: CommunityMembership, data: GroupMealInput) -> GroupMeal:
    meeting_time_minutes = None
    if data.meeting_time:
        meeting_time_minutes = dates.parse_time_to_minutes(data.meeting_time)
        try:
            dates.validate_meeting_time(meeting_time_minutes, data.time_band)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if data.mode == GroupMealMode.MEET and not data.meet_url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="meetUrl is required for MEET group meals")

    place = data.place
    meal = GroupMeal(
        community_id=membership.community_id,
        host_user_id=user.user_id,
        host_membership_id=membership.membership_id,
        title=data.title or "",
        date=data.date,
        weekday=dates.weekday_for_date(data.date),
        time_slot=dates.time_band_to_slot(data.time_band),
        meeting_time_minutes=meeting_time_minutes,
        capacity=data.capacity,
        status=GroupMealStatus.OPEN,
        mode=data.mode,
        budget=data.budget,
        meet_url=data.meet_url if data.mode == GroupMealMode.MEET else None,
        meeting_place=place.name if place else None,
        place_name=place.name if place else None,
        place_address=place.address if place else None,
        place_latitude=place.latitude if place else None,
        place_longitude=place.longitude if place else None,
        place_google_place_id=place.google_place_id if place else None,
        expires_at=dates.compute_expires_at(data.date, data.time_band),
    )
    db.add(meal)
    db.flush()

    db.add(GroupMealParticipant(
        group_meal_id=meal.group_meal_id,
        user_id=user.user_id,
        status=ParticipantStatus.JOINED,
        is_host=True,
        is_creator=not user.is_admin,
    ))
    sync_group_meal_status(db, meal)
    db.commit()
    db.refresh(meal)
    logger.info("Created group meal %s on %s by user %s (capacity %d)",
                meal.group_meal_id, meal.date.isoformat(), user.user_id, meal.capacity)
    return meal


def update_group_meal(db: Session, group_meal_id: str, user: User, changes: dict[str, Any]) -> GroupMeal:
    meal = lock_group_meal(db, group_meal_id)
    if not can_manage(meal, user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the host or an admin can edit this group meal")

    if "capacity" in changes and changes["capacity"] is not None:
        active = count_active_participants(db, meal.group_meal_id)
        if changes["capacity"] < active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Capacity cannot be lower than the current {active} participants",
            )
        meal.capacity = changes["capacity"]

    time_band = changes.get("time_band") or dates.slot_to_time_band(meal.time_slot)
    if changes.get("date") is not None:
        meal.date = changes["date"]
        meal.weekday = dates.weekday_for_date(meal.date)
    if changes.get("time_band") is not None:
        meal.time_slot = dates.time_band_to_slot(time_band)
    if "meeting_time" in changes:
        if changes["meeting_time"] is None:
            meal.meeting_time_minutes = None
        else:
            minutes = dates.parse_time_to_minutes(changes["meeting_time"])
            try:
                dates.validate_meeting_time(minutes, time_band)
            except ValueError as exc:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
            meal.meeting_time_minutes = minutes
    elif changes.get("time_band") is not None and meal.meeting_time_minutes is not None:
        # The stored meeting time must still fit the new band
        try:
            dates.validate_meeting_time(meal.meeting_time_minutes, time_band)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if "place" in changes:
        place: Optional[PlaceInput] = changes["place"]
        meal.place_name = place.name if place else None
        meal.place_address = place.address if place else None
        meal.place_latitude = place.latitude if place else None
        meal.place_longitude = place.longitude if place else None
        meal.place_google_place_id = place.google_place_id if place else None
    for key in ("title", "meeting_place", "budget"):
        if key in changes:
            setattr(meal, key, changes[key])
    meal.expires_at = dates.compute_expires_at(meal.date, time_band)

    sync_group_meal_status(db, meal)
    db.commit()
    db.refresh(meal)
    logger.info("Updated group meal %s by user %s", meal.group_meal_id, user.user_id)
    return meal


def delete_group_meal(db: Session, group_meal_id: str, user: User) -> None:
    meal = get_group_meal(db, group_meal_id)
    if not can_manage(meal, user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the host or an admin can delete this group meal")
    # Invitations, participants and chat messages go with the meal
    db.delete(meal)
    db.commit()
    logger.info("Deleted group meal %s by user %s", group_meal_id, user.user_id)


def list_open_group_meals(
    db: Session, community_id: str, mode: Optional[GroupMealMode] = None, today: Optional[date] = None
) -> list[GroupMeal]:
    since = (today or datetime.now(timezone.utc).date()) - timedelta(days=1)
    query = db.query(GroupMeal).filter(
        GroupMeal.community_id == community_id,
        GroupMeal.status.in_([GroupMealStatus.OPEN, GroupMealStatus.FULL]),
        GroupMeal.date >= since,
    )
    if mode is not None:
        query = query.filter(GroupMeal.mode == mode)
    return query.order_by(GroupMeal.date.asc(), GroupMeal.created_at.asc()).all()


# --- invitations -----------------------------------------------------------

def invite(db: Session, group_meal_id: str, host_membership: CommunityMembership, user_ids: list[str]) -> list[str]:
    """Invite members; returns ids of users who newly took a seat."""
    meal = lock_group_meal(db, group_meal_id)
    ensure_host(meal, host_membership)
    ensure_not_closed(meal)

    targets = list(dict.fromkeys(user_ids))
    if meal.host_user_id in targets:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The host cannot invite themselves")

    eligible = (
        db.query(CommunityMembership.user_id)
        .join(User, User.user_id == CommunityMembership.user_id)
        .filter(
            CommunityMembership.community_id == meal.community_id,
            CommunityMembership.status == MembershipStatus.approved,
            CommunityMembership.user_id.in_(targets),
            User.is_admin.is_(False),
        )
        .all()
    )
    if len(eligible) != len(targets):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All invitees must be approved members of this community",
        )

    existing = {
        p.user_id: p
        for p in db.query(GroupMealParticipant).filter(
            GroupMealParticipant.group_meal_id == meal.group_meal_id,
            GroupMealParticipant.user_id.in_(targets),
        )
    }
    needs_seat = [uid for uid in targets if uid not in existing or existing[uid].status not in ACTIVE_STATUSES]
    remaining = remaining_capacity(db, meal)
    if len(needs_seat) > remaining:
        raise NoRemainingCapacityError(f"Only {remaining} more member(s) can be invited")

    now = datetime.now(timezone.utc)
    for uid in needs_seat:
        _set_participant_status(db, meal, uid, ParticipantStatus.INVITED, existing.get(uid))

    invitations = {
        inv.user_id: inv
        for inv in db.query(GroupMealInvitation).filter(
            GroupMealInvitation.group_meal_id == meal.group_meal_id,
            GroupMealInvitation.user_id.in_(targets),
        )
    }
    for uid in targets:
        invitation = invitations.get(uid)
        if invitation is None:
            db.add(GroupMealInvitation(group_meal_id=meal.group_meal_id, user_id=uid, invited_at=now))
        elif uid in needs_seat:
            invitation.invited_at = now
            invitation.is_canceled = False
            invitation.canceled_at = None

    sync_group_meal_status(db, meal)
    db.commit()
    logger.info("Host %s invited %d member(s) to group meal %s", host_membership.user_id, len(needs_seat), group_meal_id)
    return needs_seat


def get_invitation(db: Session, invitation_id: str) -> GroupMealInvitation:
    invitation = db.query(GroupMealInvitation).filter(GroupMealInvitation.invitation_id == invitation_id).first()
    if invitation is None:
        raise HTTPException(status_code=404, detail="Invitation not found")
    return invitation


def list_invitations(db: Session, group_meal_id: str, membership: CommunityMembership) -> list[GroupMealInvitation]:
    meal = get_group_meal(db, group_meal_id)
    ensure_host(meal, membership)
    return (
        db.query(GroupMealInvitation)
        .filter(GroupMealInvitation.group_meal_id == group_meal_id)
        .order_by(GroupMealInvitation.invited_at.asc())
        .all()
    )


def cancel_invitation(db: Session, invitation_id: str, membership: CommunityMembership) -> None:
    """Withdraw an invitation. An unanswered seat is released."""
    invitation = get_invitation(db, invitation_id)
    meal = lock_group_meal(db, invitation.group_meal_id)
    ensure_host(meal, membership)
    if invitation.is_canceled:
        return

    invitation.is_canceled = True
    invitation.canceled_at = datetime.now(timezone.utc)
    participant = get_participant(db, meal.group_meal_id, invitation.user_id)
    if participant is not None and participant.status == ParticipantStatus.INVITED:
        participant.status = ParticipantStatus.CANCELLED
    sync_group_meal_status(db, meal)
    db.commit()
    logger.info("Host %s cancelled invitation %s", membership.user_id, invitation_id)


def open_invitation(db: Session, invitation_id: str, user: User) -> None:
    invitation = get_invitation(db, invitation_id)
    if invitation.user_id != user.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only open your own invitations")
    now = datetime.now(timezone.utc)
    if invitation.first_opened_at is None:
        invitation.first_opened_at = now
    invitation.last_opened_at = now
    db.commit()


# --- participant transitions ----------------------------------------------

def respond(db: Session, group_meal_id: str, membership: CommunityMembership, action: str) -> GroupMealParticipant:
    meal = lock_group_meal(db, group_meal_id)
    ensure_same_community(meal, membership)
    participant = get_participant(db, meal.group_meal_id, membership.user_id)

    if action == "ACCEPT":
        if participant is not None and participant.is_host:
            raise HTTPException(status_code=400, detail="The host is always a participant")
        ensure_not_closed(meal)
        needs_seat = participant is None or participant.status not in ACTIVE_STATUSES
        if needs_seat and remaining_capacity(db, meal) < 1:
            raise NoRemainingCapacityError()
        participant = _set_participant_status(db, meal, membership.user_id, ParticipantStatus.JOINED, participant)
    else:
        if participant is None:
            raise HTTPException(status_code=404, detail="You are not invited to this group meal")
        if participant.is_host:
            raise HTTPException(status_code=400, detail="The host cannot decline")
        participant.status = ParticipantStatus.DECLINED

    sync_group_meal_status(db, meal)
    db.commit()
    db.refresh(participant)
    logger.info("User %s responded %s to group meal %s", membership.user_id, action, group_meal_id)
    return participant


def join(db: Session, group_meal_id: str, membership: CommunityMembership) -> GroupMealParticipant:
    meal = lock_group_meal(db, group_meal_id)
    ensure_same_community(meal, membership)
    ensure_not_closed(meal)
    participant = get_participant(db, meal.group_meal_id, membership.user_id)
    if participant is not None and participant.is_host:
        raise HTTPException(status_code=400, detail="The host is already participating")
    if participant is not None and participant.status in ACTIVE_STATUSES:
        raise HTTPException(status_code=400, detail="You are already participating")
    if remaining_capacity(db, meal) < 1:
        raise NoRemainingCapacityError()

    participant = _set_participant_status(db, meal, membership.user_id, ParticipantStatus.JOINED, participant)
    sync_group_meal_status(db, meal)
    db.commit()
    db.refresh(participant)
    logger.info("User %s joined group meal %s", membership.user_id, group_meal_id)
    return participant


def leave(db: Session, group_meal_id: str, membership: CommunityMembership) -> GroupMealParticipant:
    meal = lock_group_meal(db, group_meal_id)
    ensure_same_community(meal, membership)
    participant = get_participant(db, meal.group_meal_id, membership.user_id)
    if participant is None:
        raise HTTPException(status_code=400, detail="You are not a participant")
    if participant.is_host:
        raise HTTPException(status_code=400, detail="The host cannot leave")
    if participant.status not in ATTENDING_STATUSES:
        raise HTTPException(status_code=400, detail="You have not joined this group meal")

    participant.status = ParticipantStatus.CANCELLED
    sync_group_meal_status(db, meal)
    db.commit()
    db.refresh(participant)
    logger.info("User %s left group meal %s", membership.user_id, group_meal_id)
    return participant


def update_participant_status(
    db: Session, group_meal_id: str, membership: CommunityMembership, new_status: ParticipantStatus
) -> GroupMealParticipant:
    """Self-service switch between JOINED, LATE and CANCELLED."""
    meal = lock_group_meal(db, group_meal_id)
    ensure_same_community(meal, membership)
    participant = get_participant(db, meal.group_meal_id, membership.user_id)
    if participant is None:
        raise HTTPException(status_code=404, detail="You are not a participant")
    if participant.is_host and new_status not in ATTENDING_STATUSES:
        raise HTTPException(status_code=400, detail="The host cannot cancel")
    if new_status in ACTIVE_STATUSES and participant.status not in ACTIVE_STATUSES:
        ensure_not_closed(meal)
        if remaining_capacity(db, meal) < 1:
            raise NoRemainingCapacityError()

    participant.status = new_status
    sync_group_meal_status(db, meal)
    db.commit()
    db.refresh(participant)
    logger.info("User %s set status %s on group meal %s", membership.user_id, new_status.value, group_meal_id)
    return participant


def record_line_response(db: Session, group_meal_id: str, user_id: str, action: str) -> Optional[GroupMealParticipant]:
    """GO / NOT_GO answer from a LINE postback on an auto-grouped meal.

    Only auto-meal seats (PENDING, GO, NOT_GO) take the answer. Seats on manual
    meals, the host's JOINED seat included, are left alone and None is returned.
    """
    try:
        meal = lock_group_meal(db, group_meal_id)
    except GroupMealNotFoundError:
        return None
    participant = get_participant(db, meal.group_meal_id, user_id)
    if participant is None or participant.status not in LINE_RESPONSE_STATUSES:
        return None
    participant.status = {
        "GO": ParticipantStatus.GO,
        "NOT_GO": ParticipantStatus.NOT_GO,
    }.get(action, ParticipantStatus.PENDING)
    sync_group_meal_status(db, meal)
    db.commit()
    db.refresh(participant)
    logger.info("User %s answered %s via LINE for group meal %s", user_id, participant.status.value, group_meal_id)
    return participant


# --- candidates ------------------------------------------------------------

def list_candidates(db: Session, group_meal_id: str, membership: CommunityMembership) -> list[dict]:
    """Approved non-admin members without an active seat, slot-available first."""
    meal = get_group_meal(db, group_meal_id)
    ensure_host(meal, membership)

    active_ids = {
        p.user_id for p in meal.participants if p.status in ACTIVE_STATUSES
    }
    members = (
        db.query(CommunityMembership)
        .join(User, User.user_id == CommunityMembership.user_id)
        .filter(
            CommunityMembership.community_id == meal.community_id,
            CommunityMembership.status == MembershipStatus.approved,
            User.is_admin.is_(False),
        )
        .all()
    )
    members = [m for m in members if m.user_id not in active_ids]
    available = is_available_for_slot(db, [m.user_id for m in members], meal.weekday, meal.time_slot)

    candidates = []
    for m in members:
        profile = m.user.profile
        candidates.append({
            "user_id": m.user_id,
            "name": profile.name if profile else "",
            "favorite_meals": (profile.favorite_meals if profile else None) or [],
            "profile_image_url": profile.profile_image_url if profile else None,
            "is_available_for_slot": m.user_id in available,
        })
    candidates.sort(key=lambda c: (not c["is_available_for_slot"], c["name"]))
    return candidates


# --- views -----------------------------------------------------------------

def my_status(meal: GroupMeal, user_id: Optional[str]) -> str:
    for p in meal.participants:
        if p.user_id == user_id:
            if p.status in (ParticipantStatus.JOINED, ParticipantStatus.INVITED, ParticipantStatus.LATE):
                return p.status.value
            return "NONE"
    return "NONE"


def participant_payload(participant: GroupMealParticipant) -> dict:
    profile = participant.user.profile if participant.user else None
    return {
        "user_id": participant.user_id,
        "is_host": participant.is_host,
        "status": participant.status,
        "name": profile.name if profile else "",
        "favorite_meals": (profile.favorite_meals if profile else None) or [],
        "profile_image_url": profile.profile_image_url if profile else None,
    }


def group_meal_payload(meal: GroupMeal, current_user_id: Optional[str], joined_only: bool = False) -> dict:
    attending = [p for p in meal.participants if p.status in ATTENDING_STATUSES]
    active_count = sum(1 for p in meal.participants if p.status in ACTIVE_STATUSES)
    shown = attending if joined_only else list(meal.participants)
    host_profile = meal.host.profile if meal.host else None
    place = None
    place_name = meal.place_name or meal.meeting_place
    if place_name:
        place = {
            "name": place_name,
            "address": meal.place_address,
            "latitude": meal.place_latitude,
            "longitude": meal.place_longitude,
            "google_place_id": meal.place_google_place_id,
        }
    return {
        "id": meal.group_meal_id,
        "title": meal.title,
        "date": meal.date,
        "weekday": meal.weekday,
        "time_slot": meal.time_slot,
        "capacity": meal.capacity,
        "status": meal.status,
        "mode": meal.mode,
        "budget": meal.budget,
        "meeting_place": meal.meeting_place,
        "meet_url": meal.meet_url,
        "talk_topics": meal.talk_topics or [],
        "host": {
            "user_id": meal.host_user_id,
            "name": host_profile.name if host_profile else "",
            "profile_image_url": host_profile.profile_image_url if host_profile else None,
        },
        "schedule": {
            "date": meal.date,
            "time_band": dates.slot_to_time_band(meal.time_slot),
            "meeting_time": dates.format_minutes(meal.meeting_time_minutes),
            "meeting_time_minutes": meal.meeting_time_minutes,
            "place": place,
        },
        "joined_count": len(attending),
        "active_count": active_count,
        "remaining_slots": max(meal.capacity - active_count, 0),
        "my_status": my_status(meal, current_user_id),
        "participants": [participant_payload(p) for p in shown],
    }
