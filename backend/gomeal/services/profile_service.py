"""Profile read/update, completion rate and local profile-image storage."""
import logging
import os
import time
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from gomeal.models.user import User, Profile
from gomeal.services.membership_service import get_approved_membership, get_approved_member

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}
MAX_IMAGE_BYTES = 5 * 1024 * 1024

PROFILE_FIELDS = (
    "name", "favorite_meals", "hobbies", "main_area", "sub_areas", "default_budget",
    "drinking_style", "meal_style", "go_meal_frequency", "ng_foods", "bio",
)


@dataclass
class UploadedImage:
    """Multipart upload normalized before it reaches storage."""

    filename: str
    mime_type: str
    size: int
    content: bytes


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def compute_completion_rate(profile: Profile) -> int:
    """Percentage of filled profile fields, rounded to the nearest 10."""
    checks = [
        bool(profile.profile_image_url),
        _has_text(profile.name),
        len(profile.favorite_meals or []) > 0,
        _has_text(profile.main_area),
        bool(profile.default_budget),
        _has_text(profile.bio),
        bool(profile.drinking_style),
        bool(profile.meal_style),
        bool(profile.go_meal_frequency),
        len(profile.ng_foods or []) > 0,
    ]
    raw = sum(checks) / len(checks) * 100
    # Round half up so 45% reads as 50%
    return max(0, min(100, int(raw / 10 + 0.5) * 10))


def get_or_create_profile(db: Session, user: User) -> Profile:
    if user.profile is None:
        user.profile = Profile(name=user.line_display_name or "")
        db.commit()
        db.refresh(user)
    return user.profile


def update_profile(db: Session, user: User, changes: dict[str, Any]) -> Profile:
    profile = get_or_create_profile(db, user)
    for key in PROFILE_FIELDS:
        if key in changes:
            setattr(profile, key, changes[key])
    db.commit()
    db.refresh(profile)
    logger.info("Updated profile of user %s", user.user_id)
    return profile


def validate_image(image: UploadedImage) -> str:
    """Return the file extension for an acceptable image, else raise 400."""
    extension = ALLOWED_IMAGE_TYPES.get(image.mime_type)
    if extension is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unsupported image type")
    if image.size > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File too large")
    if image.size == 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file")
    return extension


def save_profile_image(
    db: Session, user: User, image: UploadedImage, image_dir: str, url_prefix: str
) -> Profile:
    extension = validate_image(image)
    user_dir = os.path.join(image_dir, user.user_id)
    os.makedirs(user_dir, exist_ok=True)
    filename = f"{int(time.time() * 1000)}-{uuid.uuid4()}.{extension}"
    with open(os.path.join(user_dir, filename), "wb") as fh:
        fh.write(image.content)

    profile = get_or_create_profile(db, user)
    profile.profile_image_url = f"{url_prefix.rstrip('/')}/{user.user_id}/{filename}"
    db.commit()
    db.refresh(profile)
    logger.info("Stored profile image for user %s (%d bytes)", user.user_id, image.size)
    return profile


def get_visible_profile(db: Session, viewer: User, target_user_id: str) -> Profile:
    """Another member's profile, visible only inside a shared community."""
    target = db.query(User).filter(User.user_id == target_user_id).first()
    if target is None or target.profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    if viewer.user_id == target_user_id:
        return target.profile

    membership = get_approved_membership(db, viewer.user_id)
    if membership is None or get_approved_member(db, membership.community_id, target_user_id) is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return target.profile
