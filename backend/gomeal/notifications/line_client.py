"""Thin HTTP client for the LINE Messaging API (push and reply)."""
import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

LINE_PUSH_API_URL = "https://api.line.me/v2/bot/message/push"
LINE_REPLY_API_URL = "https://api.line.me/v2/bot/message/reply"


class LineMessagingClient:
    """Sends messages with a channel access token. Failures are logged and reported as False."""

    def __init__(self, access_token: str, http_client: Optional[httpx.Client] = None, timeout: float = 10.0):
        self.access_token = access_token
        self._http_client = http_client
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token)

    def push(self, to: str, messages: list[dict[str, Any]]) -> bool:
        return self._post(LINE_PUSH_API_URL, {"to": to, "messages": messages}, target=to)

    def reply(self, reply_token: str, messages: list[dict[str, Any]]) -> bool:
        return self._post(LINE_REPLY_API_URL, {"replyToken": reply_token, "messages": messages}, target="reply")

    def _post(self, url: str, body: dict[str, Any], target: str) -> bool:
        if not self.is_configured:
            logger.warning("LINE access token not configured; skipping message to %s", target)
            return False

        headers = {"Authorization": f"Bearer {self.access_token}"}
        try:
            if self._http_client is not None:
                response = self._http_client.post(url, json=body, headers=headers, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("LINE request to %s failed: %s", target, exc)
            return False

        if response.status_code >= 400:
            logger.error("LINE request to %s rejected: %s %s", target, response.status_code, response.text)
            return False
        return True
