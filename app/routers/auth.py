# app/routers/auth.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_auth
from app.core.config import get_settings
from app.core.security import TokenClaims, TokenIssuer, get_token_issuer
from app.core.supabase_client import AuthProvider, get_auth_provider
from app.database import get_session
from app.repositories.user_repo import UserRepository
from app.schemas.auth import (
    MessageResponse,
    ResetPasswordRequest,
    SigninRequest,
    SigninResponse,
    SignupRequest,
    SignupResponse,
)
from app.schemas.user import ProfileUpdate, UserRead
from app.services.auth_service import AuthService
from app.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Auth"])

settings = get_settings()

repo = UserRepository()
auth_service = AuthService(
    repo,
    frontend_url=settings.FRONTEND_URL,
    grace_seconds=settings.PROFILE_GRACE_SECONDS,
    poll_attempts=settings.PROFILE_POLL_ATTEMPTS,
    poll_delay_seconds=settings.PROFILE_POLL_DELAY_SECONDS,
)
user_service = UserService(repo)


# -------- Account lifecycle --------


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
)
def signup(
    payload: SignupRequest,
    session: Session = Depends(get_session),
    provider: AuthProvider = Depends(get_auth_provider),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """
    Create a Supabase identity and its profile, and return a token.

    Riders are created pending and cannot sign in until approved, but
    still receive a token here.
    """
    return auth_service.signup(
        session,
        provider,
        issuer,
        email=payload.email,
        password=payload.password,
        full_name=payload.full_name,
        phone=payload.phone,
        role=payload.role,
    )


@router.post("/signin", response_model=SigninResponse)
def signin(
    payload: SigninRequest,
    session: Session = Depends(get_session),
    provider: AuthProvider = Depends(get_auth_provider),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """
    Password sign-in.

    Riders that are not approved get 403 with their approval_status.
    """
    return auth_service.signin(
        session,
        provider,
        issuer,
        email=payload.email,
        password=payload.password,
    )


@router.post("/signout", response_model=MessageResponse)
def signout():
    """
    Tokens are stateless and cannot be revoked server-side; the client
    discards its token. Kept for API compatibility.
    """
    return MessageResponse(message="Signout successful")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    payload: ResetPasswordRequest,
    provider: AuthProvider = Depends(get_auth_provider),
):
    auth_service.reset_password(provider, payload.email)
    return MessageResponse(message="Password reset email sent")


# -------- Self profile --------


@router.get("/profile", response_model=UserRead)
def read_profile(
    session: Session = Depends(get_session),
    claims: TokenClaims = Depends(require_auth),
):
    """
    Return the authenticated user's profile.

    Auth:
      - Requires a valid bearer token.
    """
    return user_service.get_profile(session, claims.user_id)


@router.put("/profile", response_model=UserRead)
def update_profile(
    payload: ProfileUpdate,
    session: Session = Depends(get_session),
    claims: TokenClaims = Depends(require_auth),
):
    """
    Update the authenticated user's profile (partial update).

    Editable: full_name, phone, avatar_url, vehicle_type, license_number.
    """
    return user_service.update_profile(session, claims.user_id, payload)
