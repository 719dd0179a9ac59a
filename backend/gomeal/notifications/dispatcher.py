"""Notification dispatch.

Services describe what should be sent as ``NotificationRequest`` values
(recipient LINE id, kind, parameters). The ``LineNotifier`` renders each
request into a LINE payload and pushes it. Delivery is best-effort: every
failure is logged and counted, never raised, so the database mutation that
produced the request is never affected.
"""
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from fastapi import Depends

from gomeal.config import Settings, get_settings
from gomeal.notifications import messages
from gomeal.notifications.line_client import LineMessagingClient

logger = logging.getLogger(__name__)


class NotificationKind(str, enum.Enum):
    MATCH = "MATCH"
    GROUP_MEAL_INVITE = "GROUP_MEAL_INVITE"
    AUTO_GROUP_MEAL_INVITE = "AUTO_GROUP_MEAL_INVITE"
    GROUP_MEAL_REMINDER = "GROUP_MEAL_REMINDER"
    DAILY_AVAILABILITY = "DAILY_AVAILABILITY"


@dataclass
class NotificationRequest:
    line_user_id: str
    kind: NotificationKind
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class DispatchResult:
    sent: int = 0
    failed: int = 0


class LineNotifier:
    def __init__(self, client: LineMessagingClient, frontend_url: str):
        self.client = client
        self.frontend_url = frontend_url

    @property
    def is_configured(self) -> bool:
        return self.client.is_configured

    def render(self, request: NotificationRequest) -> dict[str, Any]:
        p = request.params
        if request.kind == NotificationKind.MATCH:
            return messages.build_match_message(p.get("partner_name", ""), self.frontend_url)
        if request.kind == NotificationKind.GROUP_MEAL_INVITE:
            return messages.build_group_meal_invite_message(
                p.get("title", ""), p["date"], p["time_slot"], p.get("host_name", ""), self.frontend_url
            )
        if request.kind == NotificationKind.AUTO_GROUP_MEAL_INVITE:
            return messages.build_auto_group_meal_invite(
                p["group_meal_id"], p["mode"], p.get("member_names", []), p["time_slot"],
                p.get("place_label"), self.frontend_url,
            )
        if request.kind == NotificationKind.GROUP_MEAL_REMINDER:
            return messages.build_reminder_message(
                p.get("title", ""), p["time_slot"], p.get("place_label"), p.get("meet_url")
            )
        if request.kind == NotificationKind.DAILY_AVAILABILITY:
            return messages.build_availability_template(p.get("time_slot", "DAY"))
        raise ValueError(f"Unknown notification kind: {request.kind}")

    def send(self, request: NotificationRequest) -> bool:
        try:
            payload = self.render(request)
        except (KeyError, ValueError) as exc:
            logger.error("Could not render %s notification for %s: %s", request.kind, request.line_user_id, exc)
            return False
        ok = self.client.push(request.line_user_id, [payload])
        if ok:
            logger.info("Sent %s notification to %s", request.kind.value, request.line_user_id)
        else:
            logger.warning("Failed to deliver %s notification to %s", request.kind.value, request.line_user_id)
        return ok

    def send_many(self, requests: list[NotificationRequest]) -> DispatchResult:
        result = DispatchResult()
        for request in requests:
            if self.send(request):
                result.sent += 1
            else:
                result.failed += 1
        return result

    def push_raw(self, line_user_id: str, payload: dict[str, Any]) -> bool:
        return self.client.push(line_user_id, [payload])

    def reply(self, reply_token: Optional[str], payload: dict[str, Any]) -> bool:
        if not reply_token:
            return False
        return self.client.reply(reply_token, [payload])


def get_notifier(settings: Settings = Depends(get_settings)) -> LineNotifier:
    client = LineMessagingClient(settings.LINE_MESSAGING_CHANNEL_ACCESS_TOKEN)
    return LineNotifier(client, settings.FRONTEND_URL)
