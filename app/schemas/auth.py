# app/schemas/auth.py
import uuid

from pydantic import ConfigDict, EmailStr
from sqlmodel import SQLModel

from app.schemas.user import ApprovalStatus, Role


class SignupRequest(SQLModel):
    """
    Signup payload.

    Required fields are typed optional on purpose: presence is checked by
    AuthService so that a missing field yields a 400 ValidationError, the
    same as a blank one. A malformed email is rejected here (422).
    """

    model_config = ConfigDict(extra="forbid")

    email: EmailStr | None = None
    password: str | None = None
    full_name: str | None = None
    phone: str | None = None
    role: Role = "customer"


class SigninRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str


class ResetPasswordRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class UserSummary(SQLModel):
    """Redacted profile returned alongside a freshly minted token."""

    id: uuid.UUID
    email: str
    role: Role


class SigninUser(UserSummary):
    approved: bool
    approval_status: ApprovalStatus


class SignupResponse(SQLModel):
    message: str
    user: UserSummary
    token: str


class SigninResponse(SQLModel):
    message: str
    token: str
    user: SigninUser


class MessageResponse(SQLModel):
    message: str
