from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.api.deps_auth import current_user_id
from app.core.errors import ValidationError
from app.schemas.auth import ProfileOut, ProfileResponse, ProfileUpdateBody
from app.services import profile_service

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("", response_model=ProfileOut, summary="Get the caller's profile")
def get_profile(user_id: int = Depends(current_user_id), db: Session = Depends(get_db)):
    return profile_service.get_profile_by_user_id(db, user_id)


@router.put(
    "",
    response_model=ProfileResponse,
    summary="Update bio, phone and/or address",
    description="Omitted fields keep their stored value.",
)
def update_profile(
    body: ProfileUpdateBody,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    profile = profile_service.update_profile(db, user_id, bio=body.bio, phone=body.phone, address=body.address)
    return ProfileResponse(message="Profile updated successfully", profile=profile)


@router.post(
    "/image",
    response_model=ProfileResponse,
    summary="Upload a new profile image",
    description="Multipart upload in the `profileImage` field. The previous custom image is removed.",
)
def upload_profile_image(
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    if profile_image is None:
        raise ValidationError("No image file provided")
    data = profile_image.file.read()
    stored = profile_service.save_profile_image(profile_image.content_type, data)
    try:
        profile = profile_service.update_profile_image(db, user_id, stored)
    except Exception:
        profile_service.remove_profile_image(stored)
        raise
    return ProfileResponse(message="Profile image updated successfully", profile=profile)
