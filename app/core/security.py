# app/core/security.py
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from jose import jwt, JWTError, ExpiredSignatureError

from app.core.config import get_settings
from app.core.exceptions import (
    ConfigurationError,
    ExpiredTokenError,
    InvalidTokenError,
)
from app.models.user import ROLES


@dataclass(frozen=True)
class TokenClaims:
    """Identity claims carried by a session token."""

    user_id: uuid.UUID
    email: str
    role: str


class TokenIssuer:
    """
    Mints and verifies HS256 session tokens.

    Tokens are stateless: there is no revocation list. The role claim is
    whatever the role was at mint time, so a role change is only visible
    to the bearer after a new token is issued (staleness window = ttl).
    Callers wanting a shorter window for sensitive roles pass a smaller
    ttl to mint().
    """

    def __init__(
        self,
        secret: str | None,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=24),
    ):
        if not secret:
            raise ConfigurationError("JWT_SECRET is not configured. Please set it in .env.")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def mint(
        self,
        claims: TokenClaims,
        ttl: timedelta | None = None,
        now: datetime | None = None,
    ) -> str:
        """
        Sign a token for the given claims.

        Args:
            claims: identity id, email and role to embed.
            ttl: lifetime override; defaults to the configured lifetime.
            now: issue time (for deterministic signing); defaults to utcnow.
        """
        issued_at = now or datetime.now(timezone.utc)
        expires_at = issued_at + (ttl if ttl is not None else self.ttl)
        payload = {
            "sub": str(claims.user_id),
            "email": claims.email,
            "role": claims.role,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify signature and expiry, then parse the claims.

        Raises:
            ExpiredTokenError: exp is in the past.
            InvalidTokenError: bad signature, malformed token or claims.
        """
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"verify_aud": False},
            )
        except ExpiredSignatureError as e:
            raise ExpiredTokenError("Token has expired") from e
        except JWTError as e:
            raise InvalidTokenError("Invalid token") from e

        sub = payload.get("sub")
        email = payload.get("email")
        role = payload.get("role")
        if not sub or not email or role not in ROLES:
            raise InvalidTokenError("Token missing sub/email/role")

        try:
            user_id = uuid.UUID(sub)
        except ValueError as e:
            raise InvalidTokenError("Invalid sub in token") from e

        return TokenClaims(user_id=user_id, email=email, role=role)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    """
    Process-wide token issuer built once from settings.

    Called from the app lifespan so a missing secret stops startup.

    Raises:
        ConfigurationError: JWT_SECRET is not set.
    """
    settings = get_settings()
    return TokenIssuer(
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALG,
        ttl=timedelta(hours=settings.JWT_EXPIRES_IN_HOURS),
    )
