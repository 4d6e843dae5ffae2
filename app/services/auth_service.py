# app/services/auth_service.py
"""Registration, login and password change for email/password accounts."""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import (
    AuthenticationError, ConflictError, NotFoundError, ServerError, ValidationError,
)
from app.core.security import dummy_verify, hash_password, make_access_token, verify_password
from app.models.auth_models import Profile, User
from app.services.profile_service import create_profile, format_profile

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def user_view(user: User) -> dict:
    return {"id": user.id, "full_name": user.full_name, "email": user.email}


def find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def register_user(db: Session, full_name: Optional[str], email: Optional[str], password: Optional[str]) -> dict:
    """Create a user and its profile in one transaction.

    Returns ``{"user": ..., "profile": ...}``. The email pre-check only gives a
    friendly error; the unique index on ``users.email`` is what rejects a
    concurrent duplicate.
    """
    full_name, email = _clean(full_name), _clean(email)
    if not full_name or not email or not password:
        raise ValidationError("All fields are required")

    if find_user_by_email(db, email):
        raise ConflictError("Email already in use")

    hashed = hash_password(password)
    try:
        user = User(full_name=full_name, email=email, password=hashed)
        db.add(user)
        db.flush()  # user.id
        profile = create_profile(db, user.id)
        db.commit()
    except IntegrityError:
        db.rollback()
        if db.query(User.id).filter(User.email == email).first():
            logger.info("Signup lost a race for %s", email)
            raise ConflictError("Email already in use")
        logger.exception("Signup failed for %s", email)
        raise ServerError()
    except Exception:
        db.rollback()
        logger.exception("Signup failed for %s", email)
        raise ServerError()

    db.refresh(user)
    db.refresh(profile)
    logger.info("User created: id=%s email=%s", user.id, user.email)
    return {"user": user_view(user), "profile": format_profile(profile, user)}


def authenticate_user(db: Session, email: Optional[str], password: Optional[str]) -> dict:
    """Check credentials and issue a session token.

    Unknown email and wrong password raise the same ``AuthenticationError``.
    """
    email = _clean(email)
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = find_user_by_email(db, email)
    if user is None:
        dummy_verify()
        logger.info("Login rejected for %s", email)
        raise AuthenticationError("Invalid credentials")
    if not verify_password(password, user.password):
        logger.info("Login rejected for %s", email)
        raise AuthenticationError("Invalid credentials")

    token = make_access_token(user.id, user.email)
    profile = user.profile
    logger.info("Login successful: id=%s", user.id)
    return {
        "token": token,
        "user": {
            **user_view(user),
            "profile": {
                "id": profile.id,
                "profile_image": profile.profile_image,
                "bio": profile.bio,
            } if profile else None,
        },
    }


def get_user_profile(db: Session, user_id: int) -> dict:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    profile: Optional[Profile] = user.profile
    return {
        **user_view(user),
        "profile": {
            "id": profile.id,
            "profile_image": profile.profile_image,
            "bio": profile.bio,
            "phone": profile.phone,
            "address": profile.address,
        } if profile else None,
    }


def change_password(db: Session, user_id: int, current_password: Optional[str], new_password: Optional[str]) -> None:
    if not current_password or not new_password:
        raise ValidationError("Current password and new password are required")

    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if not verify_password(current_password, user.password):
        raise AuthenticationError("Current password is incorrect")

    user.password = hash_password(new_password)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Password update failed for user %s", user_id)
        raise ServerError()
    logger.info("Password updated for user %s", user_id)
