# app/core/auth.py
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.exceptions import Forbidden, TokenError, Unauthenticated, Unauthorized
from app.core.security import TokenClaims, TokenIssuer, get_token_issuer
from app.models.user import ROLE_ADMIN

# HTTP Bearer scheme:
# - auto_error=False => a missing Authorization header does not raise
#   FastAPI's own 403, so we can answer with our 401 Unauthenticated.
bearer_scheme = HTTPBearer(auto_error=False)


def require_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenClaims:
    """
    Enforce authentication.

    Flow:
      1. No bearer credential => 401 Unauthenticated.
      2. Verify the token (signature + expiry) => 401 Unauthorized on any
         failure. Expired and invalid tokens get the same answer.
      3. Attach the claims to request.state.claims and return them.

    The profile table is not consulted here.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()

    try:
        claims = issuer.verify(credentials.credentials)
    except TokenError:
        raise Unauthorized()

    request.state.claims = claims
    return claims


def require_admin(claims: TokenClaims = Depends(require_auth)) -> TokenClaims:
    """
    Enforce admin role.

    The role comes from the token, so a promotion or demotion only takes
    effect once the bearer signs in again.

    Raises:
        Forbidden (403): if the token role is not admin.
    """
    if claims.role != ROLE_ADMIN:
        raise Forbidden()
    return claims
