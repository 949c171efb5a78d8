# app/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field

ROLE_CUSTOMER = "customer"
ROLE_RIDER = "rider"
ROLE_ADMIN = "admin"
ROLES = (ROLE_CUSTOMER, ROLE_RIDER, ROLE_ADMIN)

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
APPROVAL_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def initial_approval(role: str) -> tuple[bool, str]:
    """
    Approval state a freshly provisioned profile starts in.

    Riders wait for an admin; customers and admins never enter the
    approval workflow and are approved from the start.
    """
    if role == ROLE_RIDER:
        return False, STATUS_PENDING
    return True, STATUS_APPROVED


class User(SQLModel, table=True):
    """
    Application profile for a Supabase identity.

    Identity:
      - id: MUST match Supabase auth.users.id (UUID, token "sub")

    Role:
      - "customer" | "rider" | "admin", fixed at signup.

    Approval:
      - riders start approved=False / approval_status="pending" and are
        moved by an admin; everyone else is approved.

    This table is *not* responsible for password hashes. Supabase Auth
    stores the password in its own schema. Rows are normally created by
    the `on_auth_user_created` trigger; the signup flow inserts one itself
    when the trigger has not produced it in time.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    email: str = Field(
        unique=True,
        index=True,
        max_length=255,
        description="Email from Supabase auth.users",
    )

    full_name: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=20)
    avatar_url: str | None = Field(default=None)

    # Application role (not Supabase RLS role)
    role: str = Field(
        default=ROLE_CUSTOMER,
        index=True,
        description="Application role: customer | rider | admin",
    )

    approved: bool = Field(default=True)
    approval_status: str = Field(
        default=STATUS_APPROVED,
        index=True,
        max_length=50,
        description="pending | approved | rejected",
    )
    rejection_reason: str | None = Field(default=None)

    # Rider details
    vehicle_type: str | None = Field(default=None, max_length=100)
    license_number: str | None = Field(default=None, max_length=100)

    created_at: datetime = Field(
        default_factory=utcnow,
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last modification timestamp (UTC)",
    )
