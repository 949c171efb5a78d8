# app/schemas/user.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

Role = Literal["customer", "rider", "admin"]
ApprovalStatus = Literal["pending", "approved", "rejected"]


class UserRead(SQLModel):
    """Full profile row returned to the owner and to admins."""

    id: uuid.UUID
    email: str
    full_name: str | None = None
    phone: str | None = None
    avatar_url: str | None = None
    role: Role
    approved: bool
    approval_status: ApprovalStatus
    rejection_reason: str | None = None
    vehicle_type: str | None = None
    license_number: str | None = None
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(SQLModel):
    """
    Partial self-service profile update.

    Role and approval fields are deliberately absent; extra="forbid"
    rejects attempts to send them.
    """

    model_config = ConfigDict(extra="forbid")

    full_name: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=20)
    avatar_url: str | None = None
    vehicle_type: str | None = Field(default=None, max_length=100)
    license_number: str | None = Field(default=None, max_length=100)

    @field_validator("full_name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("full_name cannot be empty")
        return v


class RiderReject(SQLModel):
    """Optional body for the reject endpoint."""

    model_config = ConfigDict(extra="forbid")

    reason: str | None = None


class RiderDecisionRead(SQLModel):
    message: str
    rider: UserRead
