# app/core/supabase_client.py
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Protocol

from supabase import create_client, Client, AuthError

from app.core.config import Settings, get_settings
from app.core.exceptions import AuthProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """The Supabase auth.users record, as far as this backend cares."""

    id: uuid.UUID
    email: str


@dataclass(frozen=True)
class SignupResult:
    """
    Outcome of an accepted sign-up request.

    identity is None when Supabase accepted the request but returned no
    user record. session_active is False when email confirmation is still
    required before the identity can sign in.
    """

    identity: Identity | None
    session_active: bool


class AuthProvider(Protocol):
    def create_identity(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> SignupResult: ...

    def authenticate(self, email: str, password: str) -> Identity: ...

    def send_password_reset(self, email: str, redirect_to: str) -> None: ...


class SupabaseAuthProvider:
    """
    Supabase Auth adapter.

    A new client (anon key) is created per call: Supabase clients keep the
    signed-in session on the instance, and this must not leak between
    concurrent requests.

    All provider rejections (duplicate email, weak password, bad
    credentials) are raised as AuthProviderError with Supabase's message.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def _client(self) -> Client:
        return create_client(self.settings.SUPABASE_URL, self.settings.SUPABASE_KEY)

    @staticmethod
    def _identity(user: Any) -> Identity | None:
        if user is None:
            return None
        return Identity(id=uuid.UUID(str(user.id)), email=user.email)

    def create_identity(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> SignupResult:
        """
        Register an identity; metadata lands in raw_user_meta_data, where
        the profile trigger reads full_name / phone / role from.
        """
        try:
            res = self._client().auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {
                        "data": metadata,
                        "email_redirect_to": f"{self.settings.FRONTEND_URL}/auth/customer/login",
                    },
                }
            )
        except AuthError as e:
            logger.warning("Supabase sign_up rejected for %s: %s", email, e.message)
            raise AuthProviderError(e.message) from e

        return SignupResult(
            identity=self._identity(res.user),
            session_active=res.session is not None,
        )

    def authenticate(self, email: str, password: str) -> Identity:
        try:
            res = self._client().auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except AuthError as e:
            raise AuthProviderError(e.message) from e

        identity = self._identity(res.user)
        if identity is None:
            raise AuthProviderError("Invalid login credentials")
        return identity

    def send_password_reset(self, email: str, redirect_to: str) -> None:
        try:
            self._client().auth.reset_password_for_email(
                email, {"redirect_to": redirect_to}
            )
        except AuthError as e:
            raise AuthProviderError(e.message) from e


def get_auth_provider() -> AuthProvider:
    """FastAPI dependency returning the Supabase-backed auth provider."""
    return SupabaseAuthProvider(get_settings())
