"""User, session and invitation schema definitions."""

from enum import Enum
from typing import Optional

from pydantic import EmailStr, Field

from sis_portal.schemas.common import APIModel


class Role(str, Enum):
    """Closed set of account roles."""

    ADMIN = "admin"
    ENCODER = "encoder"
    STUDENT = "student"


class SessionUser(APIModel):
    """Identity carried inside the session token."""

    id: str
    email: str
    role: Role


class User(APIModel):
    id: str
    email: str
    role: Role
    is_active: bool
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: str


class LoginRequest(APIModel):
    email: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(APIModel):
    message: str
    user: SessionUser


class ChangePasswordRequest(APIModel):
    old_password: Optional[str] = None
    new_password: Optional[str] = None


class VerifyInviteResponse(APIModel):
    valid: bool
    email: str


class CompleteInviteRequest(APIModel):
    token: Optional[str] = None
    password: Optional[str] = None


class InviteEncoderRequest(APIModel):
    email: EmailStr


class InvitationInfo(APIModel):
    id: str
    email: str
    role: Role
    created_by: Optional[str] = None
    created_at: str
    expires_at: str


class EncoderInfo(User):
    grade_count: int = Field(default=0, description="Grades encoded by this user.")


class UpdateUserStatusRequest(APIModel):
    is_active: bool


class UserStatusResponse(APIModel):
    id: str
    email: str
    is_active: bool
