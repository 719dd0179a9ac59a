"""Auth API routes: email/password and LINE Login."""
import hmac
import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from gomeal.config import Settings, get_settings
from gomeal.database import get_db
from gomeal.models.user import User, Profile
from gomeal.schemas.auth import AdminRegisterRequest, LoginRequest, RegisterRequest, TokenResponse, UserOut
from gomeal.security import (
    clear_auth_cookie, create_access_token, get_current_user, hash_password, set_auth_cookie, verify_password,
)
from gomeal.services import line_login_service
from gomeal.services.line_login_service import LineLoginError

logger = logging.getLogger(__name__)
router = APIRouter()


def user_out(user: User) -> UserOut:
    profile = user.profile
    return UserOut(
        id=user.user_id,
        email=user.email,
        is_admin=bool(user.is_admin),
        name=user.display_name,
        line_linked=bool(user.line_user_id),
        profile_image_url=(profile.profile_image_url if profile else None) or user.line_picture_url,
    )


def _create_user(db: Session, email: str, password: str, name: Optional[str], is_admin: bool) -> User:
    email = email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    user = User(email=email, password_hash=hash_password(password), is_admin=is_admin)
    user.profile = Profile(name=(name or "").strip())
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered %s %s", "admin" if is_admin else "user", user.user_id)
    return user


def _token_response(user: User, response: Response, settings: Settings) -> TokenResponse:
    token = create_access_token(user, settings)
    set_auth_cookie(response, token, settings)
    return TokenResponse(token=token, user=user_out(user))


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = _create_user(db, payload.email, payload.password, payload.name, is_admin=False)
    return _token_response(user, response, settings)


@router.post("/register-admin", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register_admin(
    payload: AdminRegisterRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    expected = settings.ADMIN_INVITE_CODE
    if not expected or not hmac.compare_digest(payload.invite_code, expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin invite code")
    user = _create_user(db, payload.email, payload.password, payload.name, is_admin=True)
    return _token_response(user, response, settings)


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    logger.info("User %s logged in", user.user_id)
    return _token_response(user, response, settings)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(settings: Settings = Depends(get_settings)):
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    clear_auth_cookie(response, settings)
    return response


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return user_out(current_user)


def _line_authorize_redirect(settings: Settings, mode: str) -> RedirectResponse:
    if not line_login_service.is_configured(settings):
        raise HTTPException(status_code=500, detail="LINE login is not configured")
    url = line_login_service.build_authorize_url(settings, mode)
    return RedirectResponse(url, status_code=307, headers={"Cache-Control": "no-store"})


@router.get("/line/login")
def line_login(settings: Settings = Depends(get_settings)):
    return _line_authorize_redirect(settings, "login")


@router.get("/line/register")
def line_register(settings: Settings = Depends(get_settings)):
    return _line_authorize_redirect(settings, "register")


def _frontend_redirect(settings: Settings, path: str, params: dict) -> RedirectResponse:
    url = f"{settings.FRONTEND_URL.rstrip('/')}{path}?{urlencode(params)}"
    return RedirectResponse(url, status_code=302)


@router.get("/line/callback")
def line_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Finish LINE Login and hand the token to the frontend."""
    if not line_login_service.is_configured(settings):
        raise HTTPException(status_code=500, detail="LINE login is not configured")
    try:
        if not code or not state:
            raise LineLoginError("missing_code")
        payload = line_login_service.verify_state(state, settings.line_state_secret)
        line_profile = line_login_service.fetch_line_profile(settings, code)
        user, is_new = line_login_service.resolve_line_user(db, line_profile, payload["mode"])
    except LineLoginError as exc:
        logger.warning("LINE callback failed: %s", exc.code)
        return _frontend_redirect(settings, "/login", {"error": exc.code})

    token = create_access_token(user, settings)
    response = _frontend_redirect(
        settings, "/auth/line/callback", {"token": token, "newUser": "1" if is_new else "0"}
    )
    set_auth_cookie(response, token, settings)
    return response
