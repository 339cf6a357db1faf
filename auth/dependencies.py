"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Per request the middleware moves Unauthenticated -> Authenticated or
Unauthenticated -> Rejected:
  1. Extract a candidate token: Authorization: Bearer header first, then the
     session cookie.
  2. No token                 -> NoToken      (401 "Invalid or no token found")
  3. Token fails verification -> InvalidToken (401 "Invalid token")
  4. Verified                 -> claims stored on request.state.identity

Verification results are not cached; tokens are self-contained and verify
with one HMAC.

get_current_identity() is the hard variant used by protected routes.
try_get_cookie_identity() is the soft variant (returns None on failure) used
by GET /auth/me, which only honours the cookie.

Layer rule: no imports from api/ or posts/. This module may import fastapi
because it is part of the dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import AuthError, NoToken
from auth.models import TokenClaims
from auth.tokens import TokenService


def get_current_identity(request: Request) -> TokenClaims:
    """Require a valid session token. Raises NoToken or InvalidToken.

    Use as a FastAPI dependency:
        @router.post("/protected")
        async def route(identity: TokenClaims = Depends(get_current_identity)): ...
    """
    tokens: TokenService = request.app.state.tokens
    token = tokens.extract(request)
    if token is None:
        raise NoToken()
    claims = tokens.verify(token)
    request.state.identity = claims
    return claims


def try_get_cookie_identity(request: Request) -> TokenClaims | None:
    """Return claims from the session cookie, or None. Never raises."""
    tokens: TokenService = request.app.state.tokens
    token = tokens.extract(request, cookie_only=True)
    if token is None:
        return None
    try:
        claims = tokens.verify(token)
    except AuthError:
        return None
    request.state.identity = claims
    return claims
