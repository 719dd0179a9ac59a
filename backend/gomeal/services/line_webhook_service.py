"""LINE webhook: signature check and postback handling."""
import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from gomeal.models.availability import AvailabilityStatus, TimeSlot
from gomeal.models.user import User
from gomeal.notifications import messages
from gomeal.notifications.dispatcher import LineNotifier
from gomeal.services import dates
from gomeal.services.availability_service import upsert_slot
from gomeal.services.group_meal_service import record_line_response

logger = logging.getLogger(__name__)

GROUP_MEAL_INVITE_TYPES = ("REAL_GROUP_MEAL_INVITE", "MEET_GROUP_MEAL_INVITE")
GROUP_MEAL_ACTIONS = ("GO", "NOT_GO")


@dataclass
class AvailabilityPostback:
    time_slot: TimeSlot
    status: AvailabilityStatus


@dataclass
class GroupMealPostback:
    group_meal_id: str
    action: str


def verify_signature(channel_secret: str, raw_body: bytes, signature: Optional[str]) -> bool:
    """``signature`` must be base64(HMAC-SHA256(channel_secret, raw_body))."""
    if not channel_secret or not signature or raw_body is None:
        return False
    digest = hmac.new(channel_secret.encode(), raw_body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode()
    return hmac.compare_digest(expected, signature)


def parse_postback(data: str):
    """Return an AvailabilityPostback, a GroupMealPostback or None."""
    if data.startswith("availability:"):
        parts = data.split(":")
        if len(parts) != 3:
            return None
        _, slot_raw, status_raw = parts
        if slot_raw not in TimeSlot.__members__ or status_raw not in AvailabilityStatus.__members__:
            return None
        return AvailabilityPostback(TimeSlot(slot_raw), AvailabilityStatus(status_raw))

    try:
        payload = json.loads(data)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    if payload.get("type") not in GROUP_MEAL_INVITE_TYPES or payload.get("action") not in GROUP_MEAL_ACTIONS:
        return None
    if not isinstance(payload.get("groupMealId"), str):
        return None
    return GroupMealPostback(payload["groupMealId"], payload["action"])


def _handle_availability(db: Session, user: User, postback: AvailabilityPostback,
                         reply_token: Optional[str], notifier: LineNotifier) -> None:
    weekday = dates.today_weekday_in_jst()
    upsert_slot(db, user.user_id, weekday, postback.time_slot, postback.status)
    notifier.reply(reply_token, messages.build_availability_reply(postback.time_slot.value, postback.status.value))
    if postback.time_slot == TimeSlot.DAY:
        notifier.push_raw(user.line_user_id, messages.build_availability_template(TimeSlot.NIGHT.value))


def _handle_group_meal(db: Session, user: User, postback: GroupMealPostback,
                       reply_token: Optional[str], notifier: LineNotifier) -> None:
    participant = record_line_response(db, postback.group_meal_id, user.user_id, postback.action)
    if participant is None:
        logger.info("Ignoring LINE response from %s for unknown seat in %s", user.user_id, postback.group_meal_id)
        return
    notifier.reply(reply_token, messages.build_group_meal_response_reply(postback.action))


def handle_events(db: Session, events: list[dict[str, Any]], notifier: LineNotifier) -> int:
    """Apply postback events; returns how many were handled."""
    handled = 0
    for event in events:
        if event.get("type") != "postback":
            continue
        line_user_id = (event.get("source") or {}).get("userId")
        postback = parse_postback((event.get("postback") or {}).get("data") or "")
        if not line_user_id or postback is None:
            continue
        user = db.query(User).filter(User.line_user_id == line_user_id).first()
        if user is None:
            logger.info("Ignoring LINE postback from unknown user %s", line_user_id)
            continue

        reply_token = event.get("replyToken")
        if isinstance(postback, AvailabilityPostback):
            _handle_availability(db, user, postback, reply_token, notifier)
        else:
            _handle_group_meal(db, user, postback, reply_token, notifier)
        handled += 1
    return handled
