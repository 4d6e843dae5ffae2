# app/services/password_reset.py
"""
Three-step OTP password reset.

Each user has at most one ``PasswordResetToken`` row:

    request_otp   no row / any row -> row with fresh OTP hash, no verification token
    verify_otp    row + correct OTP -> row carries a verification token
    reset_password row + matching verification token -> password replaced, row deleted

A new request overwrites the row, so an older OTP or verification token stops
working. Failed OTP guesses are not counted; there is no lockout.
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ExpiredError, NotFoundError, ServerError, ValidationError
from app.core.security import (
    dummy_verify, ensure_aware, generate_otp, hash_password, now_utc, random_token, verify_password,
)
from app.models.auth_models import User
from app.models.password_reset import PasswordResetToken
from app.services.mailer import send_otp_email

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    return value.strip() if value and value.strip() else None


def _get_user(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Password reset %s failed", what)
        raise ServerError()


def _is_expired(rec: PasswordResetToken) -> bool:
    return now_utc() > ensure_aware(rec.expires_at)


def _store_otp(db: Session, user_id: int, otp_hash: str, now) -> None:
    rec = db.query(PasswordResetToken).filter(PasswordResetToken.user_id == user_id).first()
    if rec is None:
        rec = PasswordResetToken(user_id=user_id)
        db.add(rec)
    rec.token = otp_hash
    rec.expires_at = now + timedelta(minutes=settings.otp_exp_minutes)
    rec.verification_token = None
    rec.created_at = now


def deliver_otp(user_id: int, email: str, otp: str) -> None:
    try:
        send_otp_email(email, otp, settings.otp_exp_minutes)
    except Exception:
        logger.exception("Could not deliver reset OTP to user %s", user_id)


def request_otp(db: Session, email: Optional[str],
                background_tasks: Optional[BackgroundTasks] = None) -> None:
    """Issue a new OTP for ``email`` if such an account exists.

    Unknown emails still pay for one bcrypt round and return silently, so the
    caller cannot tell the two cases apart. With ``background_tasks`` the email
    goes out after the response; delivery failures are logged, not raised.
    """
    email = _clean(email)
    if not email:
        raise ValidationError("Email is required")

    user = _get_user(db, email)
    if user is None:
        dummy_verify()
        logger.info("Password reset requested for unknown email")
        return

    user_id, user_email = user.id, user.email
    otp = generate_otp()
    otp_hash = hash_password(otp)
    now = now_utc()

    try:
        _store_otp(db, user_id, otp_hash, now)
        db.commit()
    except IntegrityError:
        # a concurrent request inserted the row first; last writer wins
        db.rollback()
        _store_otp(db, user_id, otp_hash, now)
        _commit(db, "request")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Password reset request failed")
        raise ServerError()
    logger.info("Password reset OTP issued for user %s", user_id)

    if background_tasks is not None:
        background_tasks.add_task(deliver_otp, user_id, user_email, otp)
    else:
        deliver_otp(user_id, user_email, otp)


def verify_otp(db: Session, email: Optional[str], otp: Optional[str]) -> str:
    """Check ``otp`` and return the verification token needed by ``reset_password``."""
    email, otp = _clean(email), _clean(otp)
    if not email or not otp:
        raise ValidationError("Email and OTP are required")

    user = _get_user(db, email)
    if user is None:
        raise NotFoundError("User not found")
    rec = db.query(PasswordResetToken).filter(PasswordResetToken.user_id == user.id).first()
    if rec is None:
        raise NotFoundError("No OTP requested for this user")
    if _is_expired(rec):
        raise ExpiredError("OTP has expired")
    if not verify_password(otp, rec.token):
        logger.info("Invalid OTP submitted for user %s", user.id)
        raise ValidationError("Invalid OTP")

    token = random_token(32)
    rec.verification_token = token
    _commit(db, "verify")
    logger.info("Password reset OTP verified for user %s", user.id)
    return token


def reset_password(db: Session, email: Optional[str], password: Optional[str],
                   verification_token: Optional[str]) -> None:
    """Replace the password and consume the reset row in one commit."""
    email, verification_token = _clean(email), _clean(verification_token)
    if not email or not password or not verification_token:
        raise ValidationError("Email, password, and verification token are required")

    user = _get_user(db, email)
    if user is None:
        raise NotFoundError("User not found")
    rec = (
        db.query(PasswordResetToken)
        .filter(
            PasswordResetToken.user_id == user.id,
            PasswordResetToken.verification_token == verification_token,
        )
        .first()
    )
    if rec is None:
        raise ValidationError("Invalid verification token")
    if _is_expired(rec):
        raise ExpiredError("Token has expired. Please request a new OTP.")

    user.password = hash_password(password)
    db.delete(rec)
    _commit(db, "reset")
    logger.info("Password reset completed for user %s", user.id)
