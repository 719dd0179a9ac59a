"""Group-meal chat with cursor pagination over the monotonic message id."""
import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from gomeal.models.group_meal import GroupMeal, GroupMealChatMessage, ATTENDING_STATUSES
from gomeal.models.user import User
from gomeal.services.group_meal_service import get_group_meal, get_participant
from gomeal.services.membership_service import get_approved_member

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 30
MAX_PAGE_SIZE = 100
MAX_MESSAGE_LENGTH = 1000


def assert_can_access_chat(db: Session, user: User, group_meal_id: str) -> GroupMeal:
    """The host always; otherwise an approved member with an attending seat."""
    meal = get_group_meal(db, group_meal_id)
    if meal.host_user_id == user.user_id:
        return meal
    if get_approved_member(db, meal.community_id, user.user_id) is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Community membership is not approved")
    participant = get_participant(db, meal.group_meal_id, user.user_id)
    if participant is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not a participant")
    if participant.status not in ATTENDING_STATUSES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only confirmed participants can chat")
    return meal


def list_messages(
    db: Session, group_meal_id: str, cursor: Optional[int] = None, limit: int = DEFAULT_PAGE_SIZE
) -> tuple[list[GroupMealChatMessage], Optional[int]]:
    """Return (messages oldest-first, next cursor). The cursor pages toward older messages."""
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    query = db.query(GroupMealChatMessage).filter(GroupMealChatMessage.group_meal_id == group_meal_id)
    if cursor is not None:
        query = query.filter(GroupMealChatMessage.message_id < cursor)
    rows = query.order_by(GroupMealChatMessage.message_id.desc()).limit(limit + 1).all()

    has_more = len(rows) > limit
    page = rows[:limit]
    next_cursor = page[-1].message_id if has_more and page else None
    page.reverse()
    return page, next_cursor


def post_message(db: Session, group_meal_id: str, user: User, text: str) -> GroupMealChatMessage:
    body = text.strip()
    if not body or len(body) > MAX_MESSAGE_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Message must be 1-{MAX_MESSAGE_LENGTH} characters",
        )
    message = GroupMealChatMessage(group_meal_id=group_meal_id, sender_user_id=user.user_id, text=body)
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info("User %s posted message %s to group meal %s", user.user_id, message.message_id, group_meal_id)
    return message


def message_payload(message: GroupMealChatMessage) -> dict:
    profile = message.sender.profile if message.sender else None
    return {
        "id": message.message_id,
        "group_meal_id": message.group_meal_id,
        "sender": {
            "user_id": message.sender_user_id,
            "name": profile.name if profile else "",
            "profile_image_url": profile.profile_image_url if profile else None,
        },
        "text": message.text,
        "created_at": message.created_at,
    }
