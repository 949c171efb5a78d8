# app/core/exceptions.py
from fastapi import HTTPException, status


# ---------------------------------------------------------------------------
# Caller-visible errors
#
# These subclass HTTPException so FastAPI renders them directly; services
# raise them and routers let them propagate.
# ---------------------------------------------------------------------------


class ValidationError(HTTPException):
    """Bad input (caller's fault)."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class AuthProviderError(HTTPException):
    """Supabase Auth rejected the request; the provider message is passed through."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ProvisioningError(HTTPException):
    """Identity was accepted by the provider but is not usable yet."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
        )


class Unauthenticated(HTTPException):
    def __init__(self, detail: str = "Access token required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Unauthorized(HTTPException):
    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(HTTPException):
    def __init__(self, detail: str = "Admin access required"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class PendingApproval(HTTPException):
    """
    Rider credentials were valid but the account is not approved.

    The detail carries the current approval_status so clients can tell
    "pending" from "rejected".
    """

    def __init__(self, approval_status: str):
        self.approval_status = approval_status
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "Account pending approval",
                "approval_status": approval_status,
                "message": (
                    f"Your rider account is {approval_status}. "
                    "Please wait for admin approval."
                ),
            },
        )


class NotFoundError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InvalidTransition(HTTPException):
    """Requested approval change is not an allowed transition."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


# ---------------------------------------------------------------------------
# Internal errors (never rendered as-is)
# ---------------------------------------------------------------------------


class ConfigurationError(RuntimeError):
    """Fatal misconfiguration detected at startup."""


class TokenError(Exception):
    """Base class for session token verification failures."""


class InvalidTokenError(TokenError):
    """Bad signature, malformed token or missing claims."""


class ExpiredTokenError(TokenError):
    """Token signature is valid but exp is in the past."""


class ProfileConflictError(Exception):
    """Insert hit a uniqueness constraint: the profile row already exists."""
