"""LINE Login: signed OAuth state, code exchange and user lookup."""
import base64
import hashlib
import hmac
import json
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy.orm import Session

from gomeal.config import Settings
from gomeal.models.user import User, Profile
from gomeal.security import hash_password

logger = logging.getLogger(__name__)

LINE_AUTHORIZE_URL = "https://access.line.me/oauth2/v2.1/authorize"
LINE_TOKEN_URL = "https://api.line.me/oauth2/v2.1/token"
LINE_PROFILE_URL = "https://api.line.me/v2/profile"
STATE_TTL_SECONDS = 10 * 60
LOGIN_MODES = ("login", "register")


class LineLoginError(Exception):
    """Carries the short error code sent back to the frontend."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


@dataclass
class LineProfile:
    user_id: str
    display_name: str = ""
    picture_url: Optional[str] = None


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(data: str) -> bytes:
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def _sign(payload_b64: str, secret: str) -> str:
    return hmac.new(secret.encode(), payload_b64.encode(), hashlib.sha256).hexdigest()


def generate_state(secret: str, mode: str = "login", now: Optional[float] = None) -> tuple[str, dict]:
    """Return (token, payload) where token is ``base64url(json).hexsig``."""
    payload = {
        "value": secrets.token_hex(16),
        "nonce": secrets.token_hex(16),
        "createdAt": int((now if now is not None else time.time()) * 1000),
        "mode": mode if mode in LOGIN_MODES else "login",
    }
    payload_b64 = _b64url_encode(json.dumps(payload, separators=(",", ":")).encode())
    return f"{payload_b64}.{_sign(payload_b64, secret)}", payload


def verify_state(token: str, secret: str, ttl_seconds: int = STATE_TTL_SECONDS, now: Optional[float] = None) -> dict:
    parts = token.split(".")
    if len(parts) != 2:
        raise LineLoginError("invalid_state")
    payload_b64, signature = parts
    if not hmac.compare_digest(signature, _sign(payload_b64, secret)):
        raise LineLoginError("invalid_state")
    try:
        payload = json.loads(_b64url_decode(payload_b64))
    except (ValueError, UnicodeDecodeError):
        raise LineLoginError("invalid_state")
    if not isinstance(payload, dict) or not isinstance(payload.get("createdAt"), int):
        raise LineLoginError("invalid_state")

    current_ms = int((now if now is not None else time.time()) * 1000)
    if current_ms - payload["createdAt"] > ttl_seconds * 1000:
        raise LineLoginError("state_expired")
    # Unknown or missing mode falls back to login
    payload["mode"] = "register" if payload.get("mode") == "register" else "login"
    return payload


def is_configured(settings: Settings) -> bool:
    return bool(settings.LINE_CHANNEL_ID and settings.LINE_CHANNEL_SECRET and settings.LINE_REDIRECT_URI)


def build_authorize_url(settings: Settings, mode: str) -> str:
    token, payload = generate_state(settings.line_state_secret, mode)
    params = {
        "response_type": "code",
        "client_id": settings.LINE_CHANNEL_ID,
        "redirect_uri": settings.LINE_REDIRECT_URI,
        "state": token,
        "scope": "openid profile",
        "nonce": payload["nonce"],
        "bot_prompt": "aggressive",
    }
    return f"{LINE_AUTHORIZE_URL}?{urlencode(params)}"


def fetch_line_profile(settings: Settings, code: str, http_client: Optional[httpx.Client] = None) -> LineProfile:
    """Exchange the authorization code and read the LINE profile."""
    client = http_client or httpx.Client(timeout=10.0)
    try:
        token_resp = client.post(
            LINE_TOKEN_URL,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": settings.LINE_REDIRECT_URI,
                "client_id": settings.LINE_CHANNEL_ID,
                "client_secret": settings.LINE_CHANNEL_SECRET,
            },
        )
        if token_resp.status_code != 200:
            logger.error("LINE token exchange failed: %s %s", token_resp.status_code, token_resp.text)
            raise LineLoginError("token_exchange_failed")
        access_token = token_resp.json().get("access_token")
        if not access_token:
            raise LineLoginError("token_exchange_failed")

        profile_resp = client.get(LINE_PROFILE_URL, headers={"Authorization": f"Bearer {access_token}"})
        if profile_resp.status_code != 200:
            logger.error("LINE profile fetch failed: %s %s", profile_resp.status_code, profile_resp.text)
            raise LineLoginError("profile_fetch_failed")
        data = profile_resp.json()
    except httpx.HTTPError as exc:
        logger.error("LINE login request failed: %s", exc)
        raise LineLoginError("line_unreachable")
    finally:
        if http_client is None:
            client.close()

    if not data.get("userId"):
        raise LineLoginError("profile_fetch_failed")
    return LineProfile(
        user_id=data["userId"],
        display_name=data.get("displayName") or "",
        picture_url=data.get("pictureUrl"),
    )


def resolve_line_user(db: Session, line_profile: LineProfile, mode: str) -> tuple[User, bool]:
    """Find the user by LINE id; register mode creates one. Returns (user, is_new)."""
    user = db.query(User).filter(User.line_user_id == line_profile.user_id).first()
    if user is None and mode != "register":
        raise LineLoginError("not_registered")

    is_new = user is None
    if user is None:
        user = User(
            email=f"line_{line_profile.user_id}@line.local",
            # Random password: LINE accounts sign in through OAuth only
            password_hash=hash_password(secrets.token_hex(24)),
            line_user_id=line_profile.user_id,
        )
        user.profile = Profile(name=line_profile.display_name or "LINE User")
        db.add(user)
    user.line_display_name = line_profile.display_name
    user.line_picture_url = line_profile.picture_url
    db.commit()
    db.refresh(user)
    logger.info("LINE %s for user %s (new=%s)", mode, user.user_id, is_new)
    return user, is_new
