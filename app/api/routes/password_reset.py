from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas.auth import (
    PasswordForgotBody, OtpVerifyBody, OtpVerifyResponse,
    PasswordResetBody, MessageResponse,
)
from app.services import password_reset as reset_service

router = APIRouter(prefix="/password-reset", tags=["password-reset"])

GENERIC_FORGOT_MESSAGE = "If an account exists for this email, an OTP has been sent."


# ---------- REQUEST OTP ----------
@router.post(
    "/forgot",
    response_model=MessageResponse,
    summary="Send a password reset OTP",
    description="""
Emails a 6-digit OTP valid for 30 minutes. The email is sent after the response.

- Always returns the same message whether or not the account exists.
- A new request replaces any earlier OTP or verification token.
""",
)
def forgot(body: PasswordForgotBody, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    reset_service.request_otp(db, body.email, background_tasks)
    return MessageResponse(message=GENERIC_FORGOT_MESSAGE)


# ---------- VERIFY OTP ----------
@router.post(
    "/verify",
    response_model=OtpVerifyResponse,
    summary="Exchange a valid OTP for a verification token",
)
def verify(body: OtpVerifyBody, db: Session = Depends(get_db)):
    token = reset_service.verify_otp(db, body.email, body.otp)
    return OtpVerifyResponse(verification_token=token)


# ---------- RESET ----------
@router.post(
    "/reset",
    response_model=MessageResponse,
    summary="Set a new password using the verification token",
    description="The verification token is single-use; the reset record is deleted on success.",
)
def reset(body: PasswordResetBody, db: Session = Depends(get_db)):
    reset_service.reset_password(db, body.email, body.password, body.verification_token)
    return MessageResponse(message="Password reset successfully")
