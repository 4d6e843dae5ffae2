from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire models speak camelCase (``fullName``); Python code uses snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Request bodies keep every field optional so the services can answer
# missing input with their own 400 messages.

class SignupBody(CamelModel):
    full_name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="Account email (unique)")
    password: Optional[str] = Field(None, description="Plaintext password")

class LoginBody(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None

class ChangePasswordBody(CamelModel):
    current_password: Optional[str] = Field(None, description="Current password")
    new_password: Optional[str] = Field(None, description="New password")

class PasswordForgotBody(CamelModel):
    email: Optional[str] = Field(None, description="Account email")

class OtpVerifyBody(CamelModel):
    email: Optional[str] = None
    otp: Optional[str] = Field(None, description="6-digit code from the reset email")

class PasswordResetBody(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = Field(None, description="New password")
    verification_token: Optional[str] = Field(None, description="Token returned by /verify")


class ProfileOut(CamelModel):
    id: int
    user_id: int
    profile_image: str
    profile_image_url: str
    bio: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None

class ProfileSummary(CamelModel):
    id: int
    profile_image: str
    bio: Optional[str] = None

class ProfileDetail(ProfileSummary):
    phone: Optional[str] = None
    address: Optional[str] = None

class UserOut(CamelModel):
    id: int
    full_name: Optional[str] = None
    email: str

class LoginUser(UserOut):
    profile: Optional[ProfileSummary] = None

class MeOut(UserOut):
    profile: Optional[ProfileDetail] = None


class SignupResponse(CamelModel):
    message: str = "User registered successfully with profile."
    user: UserOut
    profile: ProfileOut

class LoginResponse(CamelModel):
    token: str
    user: LoginUser

class MessageResponse(CamelModel):
    message: str

class OtpVerifyResponse(CamelModel):
    message: str = "OTP verified successfully"
    verification_token: str

class ProfileResponse(CamelModel):
    message: str
    profile: ProfileOut

class ProfileUpdateBody(CamelModel):
    bio: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
