"""Group-meal API routes: lifecycle, invitations and chat."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from gomeal.database import get_db
from gomeal.dependencies import get_membership
from gomeal.models.community import CommunityMembership
from gomeal.models.group_meal import GroupMealInvitation, GroupMealMode, GroupMealParticipant, ParticipantStatus
from gomeal.models.user import User
from gomeal.notifications.dispatcher import LineNotifier, get_notifier
from gomeal.schemas.group_meal import (
    ChatMessageIn, ChatMessageOut, ChatPageOut, GroupMealCandidateOut, GroupMealCreate, GroupMealOut,
    GroupMealUpdate, InvitationOut, InviteRequest, InviteResult, ParticipantResult, ParticipantStatusUpdate,
    RespondRequest,
)
from gomeal.security import get_current_user
from gomeal.services import chat_service, group_meal_service
from gomeal.services.notification_service import group_meal_invite_requests

logger = logging.getLogger(__name__)
router = APIRouter()


def participant_result(db: Session, participant: GroupMealParticipant) -> ParticipantResult:
    meal = group_meal_service.get_group_meal(db, participant.group_meal_id)
    return ParticipantResult(user_id=participant.user_id, status=participant.status, group_meal_status=meal.status)


def invitation_out(invitation: GroupMealInvitation, participant_status: Optional[ParticipantStatus]) -> InvitationOut:
    return InvitationOut(
        id=invitation.invitation_id,
        user_id=invitation.user_id,
        name=invitation.user.display_name if invitation.user else "",
        invited_at=invitation.invited_at,
        is_canceled=invitation.is_canceled,
        canceled_at=invitation.canceled_at,
        open_state="OPENED" if invitation.first_opened_at else "SENT_UNOPENED",
        first_opened_at=invitation.first_opened_at,
        last_opened_at=invitation.last_opened_at,
        participant_status=participant_status,
    )


@router.post("/", response_model=GroupMealOut, status_code=status.HTTP_201_CREATED)
def create_group_meal(
    payload: GroupMealCreate,
    current_user: User = Depends(get_current_user),
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
):
    meal = group_meal_service.create_group_meal(db, current_user, membership, payload.to_input())
    return group_meal_service.group_meal_payload(meal, current_user.user_id)


@router.get("/", response_model=list[GroupMealOut])
def list_group_meals(
    mode: Optional[GroupMealMode] = Query(None),
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
):
    """Open and full meals of the caller's community from yesterday on."""
    meals = group_meal_service.list_open_group_meals(db, membership.community_id, mode)
    return [group_meal_service.group_meal_payload(m, membership.user_id, joined_only=True) for m in meals]


@router.post("/invitations/{invitation_id}/cancel", status_code=status.HTTP_204_NO_CONTENT)
def cancel_invitation(
    invitation_id: str,
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
):
    group_meal_service.cancel_invitation(db, invitation_id, membership)


@router.post("/invitations/{invitation_id}/open", status_code=status.HTTP_204_NO_CONTENT)
def open_invitation(invitation_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    group_meal_service.open_invitation(db, invitation_id, current_user)


@router.get("/{group_meal_id}", response_model=GroupMealOut)
def get_group_meal(
    group_meal_id: str,
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
):
    meal = group_meal_service.get_group_meal(db, group_meal_id)
    group_meal_service.ensure_same_community(meal, membership)
    return group_meal_service.group_meal_payload(meal, membership.user_id)


@router.patch("/{group_meal_id}", response_model=GroupMealOut)
def update_group_meal(
    group_meal_id: str,
    payload: GroupMealUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    meal = group_meal_service.update_group_meal(db, group_meal_id, current_user, payload.to_changes())
    return group_meal_service.group_meal_payload(meal, current_user.user_id)


@router.delete("/{group_meal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_group_meal(group_meal_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    group_meal_service.delete_group_meal(db, group_meal_id, current_user)


@router.get("/{group_meal_id}/candidates", response_model=list[GroupMealCandidateOut])
def list_candidates(
    group_meal_id: str,
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
):
    return group_meal_service.list_candidates(db, group_meal_id, membership)


@router.post("/{group_meal_id}/invite", response_model=InviteResult)
def invite(
    group_meal_id: str,
    payload: InviteRequest,
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
    notifier: LineNotifier = Depends(get_notifier),
):
    invited = group_meal_service.invite(db, group_meal_id, membership, payload.user_ids)
    meal = group_meal_service.get_group_meal(db, group_meal_id)
    notifier.send_many(group_meal_invite_requests(db, meal, invited))
    return InviteResult(
        invited_user_ids=invited,
        status=meal.status,
        remaining_slots=group_meal_service.remaining_capacity(db, meal),
    )


@router.get("/{group_meal_id}/invitations", response_model=list[InvitationOut])
def list_invitations(
    group_meal_id: str,
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
):
    invitations = group_meal_service.list_invitations(db, group_meal_id, membership)
    meal = group_meal_service.get_group_meal(db, group_meal_id)
    statuses = {p.user_id: p.status for p in meal.participants}
    return [invitation_out(inv, statuses.get(inv.user_id)) for inv in invitations]


@router.post("/{group_meal_id}/respond", response_model=ParticipantResult)
def respond(
    group_meal_id: str,
    payload: RespondRequest,
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
):
    participant = group_meal_service.respond(db, group_meal_id, membership, payload.action)
    return participant_result(db, participant)


@router.post("/{group_meal_id}/join", response_model=ParticipantResult)
def join(group_meal_id: str, membership: CommunityMembership = Depends(get_membership), db: Session = Depends(get_db)):
    participant = group_meal_service.join(db, group_meal_id, membership)
    return participant_result(db, participant)


@router.post("/{group_meal_id}/leave", response_model=ParticipantResult)
def leave(group_meal_id: str, membership: CommunityMembership = Depends(get_membership), db: Session = Depends(get_db)):
    participant = group_meal_service.leave(db, group_meal_id, membership)
    return participant_result(db, participant)


@router.patch("/{group_meal_id}/participant/status", response_model=ParticipantResult)
def update_participant_status(
    group_meal_id: str,
    payload: ParticipantStatusUpdate,
    membership: CommunityMembership = Depends(get_membership),
    db: Session = Depends(get_db),
):
    participant = group_meal_service.update_participant_status(
        db, group_meal_id, membership, ParticipantStatus(payload.status)
    )
    return participant_result(db, participant)


@router.get("/{group_meal_id}/chat/messages", response_model=ChatPageOut)
def list_chat_messages(
    group_meal_id: str,
    cursor: Optional[int] = Query(None, ge=1),
    limit: int = Query(chat_service.DEFAULT_PAGE_SIZE, ge=1, le=chat_service.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    chat_service.assert_can_access_chat(db, current_user, group_meal_id)
    messages, next_cursor = chat_service.list_messages(db, group_meal_id, cursor, limit)
    return ChatPageOut(
        messages=[chat_service.message_payload(m) for m in messages],
        next_cursor=next_cursor,
    )


@router.post("/{group_meal_id}/chat/messages", response_model=ChatMessageOut, status_code=status.HTTP_201_CREATED)
def post_chat_message(
    group_meal_id: str,
    payload: ChatMessageIn,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    chat_service.assert_can_access_chat(db, current_user, group_meal_id)
    message = chat_service.post_message(db, group_meal_id, current_user, payload.text)
    return chat_service.message_payload(message)
