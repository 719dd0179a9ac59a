"""Profile API routes."""
import logging

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from gomeal.config import Settings, get_settings
from gomeal.database import get_db
from gomeal.models.user import Profile, User
from gomeal.schemas.profile import ProfileOut, ProfileUpdate
from gomeal.security import get_current_user
from gomeal.services import profile_service
from gomeal.services.profile_service import UploadedImage

logger = logging.getLogger(__name__)
router = APIRouter()
users_router = APIRouter()


def profile_out(profile: Profile) -> ProfileOut:
    out = ProfileOut.model_validate(profile)
    out.completion_rate = profile_service.compute_completion_rate(profile)
    return out


@router.get("", response_model=ProfileOut)
def get_my_profile(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return profile_out(profile_service.get_or_create_profile(db, current_user))


@router.put("", response_model=ProfileOut)
def update_my_profile(
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name") is not None:
        changes["name"] = changes["name"].strip()
    # Nullable list columns are stored as empty lists
    for key in ("favorite_meals", "hobbies", "sub_areas", "ng_foods"):
        if key in changes and changes[key] is None:
            changes[key] = []
    return profile_out(profile_service.update_profile(db, current_user, changes))


@router.post("/image", response_model=ProfileOut)
def upload_profile_image(
    image: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    # One byte past the limit is enough to reject an oversized file
    content = image.file.read(profile_service.MAX_IMAGE_BYTES + 1)
    uploaded = UploadedImage(
        filename=image.filename or "upload",
        mime_type=image.content_type or "",
        size=len(content),
        content=content,
    )
    profile = profile_service.save_profile_image(
        db, current_user, uploaded, settings.PROFILE_IMAGE_DIR, settings.PROFILE_IMAGE_URL_PREFIX
    )
    return profile_out(profile)


@users_router.get("/{user_id}/profile", response_model=ProfileOut)
def get_user_profile(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return profile_out(profile_service.get_visible_profile(db, current_user, user_id))
