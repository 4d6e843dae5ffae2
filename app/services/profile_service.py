# app/services/profile_service.py
"""Profile rows: one per user, created together with the user."""
import logging
import os
from pathlib import Path
from typing import Optional
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFoundError, ServerError, ValidationError
from app.models.auth_models import DEFAULT_PROFILE_IMAGE, Profile, User

logger = logging.getLogger(__name__)

IMAGE_URL_PREFIX = "/uploads/profiles"
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


def format_profile(profile: Profile, user: Optional[User] = None) -> dict:
    user = user or profile.user
    return {
        "id": profile.id,
        "user_id": profile.user_id,
        "profile_image": profile.profile_image,
        "profile_image_url": f"{IMAGE_URL_PREFIX}/{profile.profile_image}",
        "bio": profile.bio,
        "phone": profile.phone,
        "address": profile.address,
        "full_name": user.full_name if user else None,
        "email": user.email if user else None,
    }


def create_profile(db: Session, user_id: int) -> Profile:
    """Add a default profile for ``user_id`` to the session without committing.

    Registration calls this inside its own transaction.
    """
    profile = Profile(user_id=user_id, profile_image=DEFAULT_PROFILE_IMAGE)
    db.add(profile)
    db.flush()
    return profile


def _get_or_create(db: Session, user_id: int) -> Profile:
    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    if profile is None:
        logger.warning("User %s had no profile; creating one", user_id)
        profile = create_profile(db, user_id)
    return profile


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Profile update failed")
        raise ServerError()


def get_profile_by_user_id(db: Session, user_id: int) -> dict:
    row = (
        db.query(Profile, User)
        .join(User, User.id == Profile.user_id)
        .filter(Profile.user_id == user_id)
        .first()
    )
    if not row:
        raise NotFoundError("Profile not found")
    profile, user = row
    return format_profile(profile, user)


def update_profile(db: Session, user_id: int, bio: Optional[str] = None,
                   phone: Optional[str] = None, address: Optional[str] = None) -> dict:
    """Overwrite only the fields that were supplied (None keeps the stored value)."""
    profile = _get_or_create(db, user_id)
    if bio is not None:
        profile.bio = bio
    if phone is not None:
        profile.phone = phone
    if address is not None:
        profile.address = address
    _commit(db)
    db.refresh(profile)
    return format_profile(profile)


def save_profile_image(content_type: Optional[str], data: bytes) -> str:
    """Write an uploaded image under the upload dir and return the stored filename.

    The extension comes from the content type, never from the client's filename.
    """
    ext = ALLOWED_IMAGE_TYPES.get((content_type or "").lower())
    if ext is None:
        raise ValidationError("Only image files are allowed")
    if not data:
        raise ValidationError("No image file provided")
    stored = f"profile-{uuid4().hex}{ext}"
    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    (upload_dir / stored).write_bytes(data)
    return stored


def remove_profile_image(name: Optional[str]) -> None:
    if not name or name == DEFAULT_PROFILE_IMAGE:
        return
    path = Path(settings.upload_dir) / os.path.basename(name)
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("Could not remove old profile image %s", path)


def update_profile_image(db: Session, user_id: int, stored_filename: str) -> dict:
    """Point the profile at an already stored file and drop the previous custom image."""
    profile = _get_or_create(db, user_id)
    old = profile.profile_image
    profile.profile_image = stored_filename
    _commit(db)
    remove_profile_image(old)
    db.refresh(profile)
    return format_profile(profile)
