from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.api.deps_auth import current_user_id
from app.schemas.auth import (
    SignupBody, SignupResponse, LoginBody, LoginResponse,
    MeOut, ChangePasswordBody, MessageResponse,
)
from app.services import auth_service


router = APIRouter(prefix="/auth", tags=["auth"])


# ---------- SIGNUP ----------
@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create user together with its profile",
    description="""
Create a user with a **unique email**. A default profile is created in the same
transaction; if either insert fails nothing is stored.

- `409` if the email is already registered.
""",
)
def signup(body: SignupBody, db: Session = Depends(get_db)):
    result = auth_service.register_user(db, body.full_name, body.email, body.password)
    return SignupResponse(**result)


# ---------- LOGIN ----------
@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Exchange email + password for a session token",
    description="Returns a bearer token valid for one day. Wrong password and unknown email both give `401 Invalid credentials`.",
)
def login(body: LoginBody, db: Session = Depends(get_db)):
    return auth_service.authenticate_user(db, body.email, body.password)


# ---------- CURRENT USER ----------
@router.get(
    "/profile",
    response_model=MeOut,
    summary="Return the current authenticated user",
    description="Requires `Authorization: Bearer <token>`.",
)
def me(user_id: int = Depends(current_user_id), db: Session = Depends(get_db)):
    return auth_service.get_user_profile(db, user_id)


# ---------- CHANGE PASSWORD ----------
@router.put(
    "/password",
    response_model=MessageResponse,
    summary="Change password for logged-in user",
)
def change_password(
    body: ChangePasswordBody,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    auth_service.change_password(db, user_id, body.current_password, body.new_password)
    return MessageResponse(message="Password updated successfully")
