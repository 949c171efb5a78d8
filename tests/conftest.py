"""Shared pytest fixtures.

Environment variables are set before any `app` module is imported, since
settings, the engine and the routers are built at import time.
"""
import os
import uuid
from typing import Any

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "testing_secret"
os.environ["PROFILE_GRACE_SECONDS"] = "0"
os.environ["PROFILE_POLL_DELAY_SECONDS"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from app.core.exceptions import AuthProviderError
from app.core.security import TokenClaims, get_token_issuer
from app.core.supabase_client import Identity, SignupResult, get_auth_provider
from app.database import engine, get_session
from app.main import app
from app.models.user import ROLE_CUSTOMER, ROLES, User


class FakeAuthProvider:
    """
    In-memory stand-in for Supabase Auth.

    trigger controls the `on_auth_user_created` side effect:
      - "immediate": profile row is inserted while the identity is created
      - "never": no profile row is created

    Like the real trigger, it writes only id/email/full_name/phone/role;
    approved and approval_status get the table's column defaults
    (approved=true, approval_status='pending') unless a test overrides
    them with trigger_approval.
    Tests that need the row to appear later drive it through the
    reconciliation sleep hook instead.
    """

    def __init__(self, session: Session):
        self.session = session
        self.trigger = "immediate"
        self.return_user = True
        self.session_active = False
        self.identities: dict[str, tuple[Identity, str]] = {}
        self.reset_requests: list[tuple[str, str]] = []
        self.trigger_approval: tuple[bool, str] = (True, "pending")

    def run_trigger(self, identity: Identity, metadata: dict[str, Any]) -> User:
        role = metadata.get("role") or ROLE_CUSTOMER
        if role not in ROLES:
            role = ROLE_CUSTOMER
        approved, approval_status = self.trigger_approval
        user = User(
            id=identity.id,
            email=identity.email,
            full_name=metadata.get("full_name"),
            phone=metadata.get("phone"),
            role=role,
            approved=approved,
            approval_status=approval_status,
        )
        self.session.add(user)
        self.session.commit()
        return user

    def create_identity(self, email, password, metadata):
        if email in self.identities:
            raise AuthProviderError("User already registered")
        if len(password) < 6:
            raise AuthProviderError("Password should be at least 6 characters")

        identity = Identity(id=uuid.uuid4(), email=email)
        self.identities[email] = (identity, password)
        self.last_metadata = metadata

        if self.trigger == "immediate":
            self.run_trigger(identity, metadata)

        return SignupResult(
            identity=identity if self.return_user else None,
            session_active=self.session_active,
        )

    def authenticate(self, email, password):
        entry = self.identities.get(email)
        if entry is None or entry[1] != password:
            raise AuthProviderError("Invalid login credentials")
        return entry[0]

    def send_password_reset(self, email, redirect_to):
        self.reset_requests.append((email, redirect_to))


@pytest.fixture
def session():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def provider(session):
    return FakeAuthProvider(session)


@pytest.fixture
def issuer():
    return get_token_issuer()


@pytest.fixture
def client(session, provider):
    def override_get_session():
        yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_auth_provider] = lambda: provider
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(issuer):
    token = issuer.mint(
        TokenClaims(user_id=uuid.uuid4(), email="boss@shop.com", role="admin")
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer_headers(issuer):
    token = issuer.mint(
        TokenClaims(user_id=uuid.uuid4(), email="buyer@shop.com", role="customer")
    )
    return {"Authorization": f"Bearer {token}"}
