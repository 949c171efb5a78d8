# app/services/auth_service.py
import logging
import time
import uuid
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.exceptions import (
    NotFoundError,
    PendingApproval,
    ProfileConflictError,
    ProvisioningError,
    ValidationError,
)
from app.core.security import TokenClaims, TokenIssuer
from app.core.supabase_client import AuthProvider, Identity
from app.models.user import (
    ROLES,
    ROLE_CUSTOMER,
    ROLE_RIDER,
    STATUS_APPROVED,
    User,
    initial_approval,
    utcnow,
)
from app.repositories.user_repo import UserRepository
from app.schemas.auth import SigninResponse, SigninUser, SignupResponse, UserSummary

logger = logging.getLogger(__name__)


class AuthService:
    """
    Signup, sign-in and password reset.

    Signup has to cope with the `on_auth_user_created` trigger in Supabase:
    it creates the profile row asynchronously and may be late, fail, or not
    fire at all. The service waits a bounded amount of time for it, then
    inserts the row itself, treating a uniqueness conflict as "the trigger
    won". The identity existing is what counts; a lagging profile row never
    fails the signup.

    Sign-in gates riders on their approval status after the password has
    been checked, so a wrong password and a pending account are reported
    differently.
    """

    def __init__(
        self,
        repo: UserRepository,
        *,
        frontend_url: str = "http://localhost:8080",
        grace_seconds: float = 1.0,
        poll_attempts: int = 3,
        poll_delay_seconds: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.repo = repo
        self.frontend_url = frontend_url
        self.grace_seconds = grace_seconds
        self.poll_attempts = poll_attempts
        self.poll_delay_seconds = poll_delay_seconds
        self.sleep = sleep

    # ----- Signup -----

    def signup(
        self,
        session: Session,
        provider: AuthProvider,
        issuer: TokenIssuer,
        *,
        email: str | None,
        password: str | None,
        full_name: str | None,
        phone: str | None = None,
        role: str = ROLE_CUSTOMER,
    ) -> SignupResponse:
        """
        Create the identity, make sure its profile row exists, mint a token.

        Steps:
          1. Validate required fields.
          2. Create the Supabase identity with full_name/phone/role metadata.
          3. Fail with ProvisioningError if no identity record came back.
          4. Reconcile the profile row (wait, poll, fallback insert).
          5. Mint a token for (id, email, role).

        Raises:
            ValidationError: missing email/password/full_name or unknown role.
            AuthProviderError: Supabase rejected the signup.
            ProvisioningError: signup accepted but no identity returned.
        """
        email = (email or "").strip()
        full_name = (full_name or "").strip()
        phone = (phone or "").strip() or None

        if not email or not password or not full_name:
            raise ValidationError("Email, password, and full name are required")
        if role not in ROLES:
            raise ValidationError(f"Unknown role: {role}")

        result = provider.create_identity(
            email,
            password,
            {"full_name": full_name, "phone": phone, "role": role},
        )

        identity = result.identity
        if identity is None:
            logger.error("Supabase accepted signup for %s but returned no user", email)
            raise ProvisioningError(
                "User creation failed. No user data returned; "
                "this may happen if email confirmation is required."
            )

        self.reconcile_profile(
            session,
            identity,
            full_name=full_name,
            phone=phone,
            role=role,
        )

        token = issuer.mint(
            TokenClaims(user_id=identity.id, email=identity.email, role=role)
        )

        if result.session_active:
            message = "Signup successful."
        else:
            message = "Signup successful. Please check your email for verification."

        return SignupResponse(
            message=message,
            user=UserSummary(id=identity.id, email=identity.email, role=role),
            token=token,
        )

    def reconcile_profile(
        self,
        session: Session,
        identity: Identity,
        *,
        full_name: str,
        phone: str | None,
        role: str,
    ) -> User:
        """
        Return the profile row for a just-created identity.

        Never raises for store problems: if neither the trigger nor the
        fallback insert produced a readable row, an unsaved profile built
        from the signup fields is returned.
        """
        profile = self._wait_for_profile(session, identity.id)
        if profile is not None:
            return self._repair_approval(session, profile)

        logger.info("Profile for %s not created by trigger; inserting it", identity.id)
        approved, approval_status = initial_approval(role)
        candidate = User(
            id=identity.id,
            email=identity.email,
            full_name=full_name,
            phone=phone,
            role=role,
            approved=approved,
            approval_status=approval_status,
        )

        try:
            return self.repo.create(session, candidate)
        except ProfileConflictError:
            logger.info("Profile for %s already exists; using existing row", identity.id)
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Fallback profile insert failed for %s", identity.id)

        try:
            existing = self.repo.get_by_id(session, identity.id)
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Profile re-fetch failed for %s", identity.id)
            existing = None

        if existing is not None:
            return self._repair_approval(session, existing)

        logger.warning("No readable profile for %s; continuing without one", identity.id)
        return User(
            id=identity.id,
            email=identity.email,
            full_name=full_name,
            phone=phone,
            role=role,
            approved=approved,
            approval_status=approval_status,
        )

    def _wait_for_profile(self, session: Session, user_id: uuid.UUID) -> User | None:
        # Grace period, then a fixed number of polls with a fixed gap.
        # A failed read counts as "not there yet".
        self.sleep(self.grace_seconds)
        for attempt in range(self.poll_attempts):
            try:
                profile = self.repo.get_by_id(session, user_id)
            except SQLAlchemyError:
                session.rollback()
                logger.exception("Profile poll %d failed for %s", attempt + 1, user_id)
                profile = None
            if profile is not None:
                return profile
            if attempt < self.poll_attempts - 1:
                self.sleep(self.poll_delay_seconds)
        return None

    def _repair_approval(self, session: Session, profile: User) -> User:
        """
        Bring a just-provisioned row to the initial approval state of its role.

        The Supabase trigger only writes id/email/full_name/phone/role, so
        approved and approval_status come from column defaults
        (approved=true, approval_status='pending') whatever the role is.
        """
        approved, approval_status = initial_approval(profile.role)
        if profile.approved == approved and profile.approval_status == approval_status:
            return profile

        logger.info(
            "Repairing approval state of %s: %s/%s -> %s/%s",
            profile.id,
            profile.approved,
            profile.approval_status,
            approved,
            approval_status,
        )
        profile.approved = approved
        profile.approval_status = approval_status
        profile.updated_at = utcnow()
        try:
            return self.repo.update(session, profile)
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Approval repair failed for %s", profile.id)
            return profile

    # ----- Sign-in -----

    def signin(
        self,
        session: Session,
        provider: AuthProvider,
        issuer: TokenIssuer,
        *,
        email: str,
        password: str,
    ) -> SigninResponse:
        """
        Authenticate with Supabase, load the profile, apply the rider gate.

        Raises:
            ValidationError: blank email or password.
            AuthProviderError: bad credentials (Supabase message).
            NotFoundError: identity has no profile row.
            PendingApproval: rider whose approval_status is not "approved".
        """
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError("Email and password are required")

        identity = provider.authenticate(email, password)

        profile = self.repo.get_by_id(session, identity.id)
        if profile is None:
            logger.error("Identity %s signed in without a profile row", identity.id)
            raise NotFoundError("User profile not found")

        if profile.role == ROLE_RIDER and profile.approval_status != STATUS_APPROVED:
            raise PendingApproval(profile.approval_status)

        token = issuer.mint(
            TokenClaims(user_id=profile.id, email=identity.email, role=profile.role)
        )

        return SigninResponse(
            message="Login successful",
            token=token,
            user=SigninUser(
                id=profile.id,
                email=identity.email,
                role=profile.role,
                approved=profile.approved,
                approval_status=profile.approval_status,
            ),
        )

    # ----- Password reset -----

    def reset_password(self, provider: AuthProvider, email: str) -> None:
        """Ask Supabase to send a password reset email."""
        email = (email or "").strip()
        if not email:
            raise ValidationError("Email is required")
        provider.send_password_reset(email, f"{self.frontend_url}/auth/reset-password")
