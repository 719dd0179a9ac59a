"""Pydantic schemas for authentication."""
from typing import Optional

from pydantic import EmailStr, Field

from gomeal.schemas.base import CamelModel


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    name: Optional[str] = Field(default=None, max_length=50)


class AdminRegisterRequest(RegisterRequest):
    invite_code: str = ""


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserOut(CamelModel):
    id: str
    email: str
    is_admin: bool
    name: str = ""
    line_linked: bool = False
    profile_image_url: Optional[str] = None


class TokenResponse(CamelModel):
    token: str
    user: UserOut
