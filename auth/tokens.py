"""
auth/tokens.py -- Session token issue/verify and cookie transport.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with Settings.jwt_secret and
       carry the user id, email and expiry (24h by default). Nothing is
       persisted server-side: validity is signature + expiry at verify time.
       verify() raises InvalidToken on any failure -- bad signature, expired,
       malformed or missing claims all look the same to the caller.

  Transport: a token may arrive as `Authorization: Bearer <token>` or in the
       session cookie. The header wins when both are present.

  Cookie: httpOnly always. Production sets SameSite=None; Secure so the
       browser keeps the cookie on the cross-site redirect back from the OAuth
       provider; development uses SameSite=Lax without Secure.

Layer rule: no imports from api/ or posts/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.errors import InvalidToken
from auth.models import TokenClaims
from core.config import Settings

logger = logging.getLogger("blogapi.auth")

_ALGORITHM = "HS256"


class TokenService:
    """Issues and verifies signed session tokens; owns the cookie policy."""

    def __init__(self, settings: Settings) -> None:
        self._secret = settings.jwt_secret
        self.cookie_name = settings.cookie_name
        self.expire_seconds = settings.token_expire_seconds
        self._production = settings.is_production

    # ------------------------------------------------------------------
    # JWT encode / decode
    # ------------------------------------------------------------------

    def issue(self, user_id: int, email: str) -> str:
        """Encode a signed JWT binding user_id and email for the configured lifetime."""
        return self._encode(user_id, email, timedelta(seconds=self.expire_seconds))

    def _encode(self, user_id: int, email: str, lifetime: timedelta) -> str:
        payload = {
            "sub": str(user_id),
            "user_id": user_id,
            "email": email,
            "exp": datetime.now(timezone.utc) + lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        """Decode and verify a JWT. Raises InvalidToken on any failure."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[_ALGORITHM])
        except JWTError as exc:
            raise InvalidToken() from exc
        user_id = payload.get("user_id")
        email = payload.get("email")
        if not isinstance(user_id, int) or not isinstance(email, str):
            raise InvalidToken()
        return TokenClaims(user_id=user_id, email=email)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def extract(self, request, cookie_only: bool = False) -> str | None:
        """Return the candidate token from the request, or None.

        Authorization: Bearer takes precedence over the cookie. cookie_only
        restricts the lookup to the cookie (used by GET /auth/me).
        """
        if not cookie_only:
            auth_header = request.headers.get("Authorization", "")
            if auth_header.startswith("Bearer "):
                token = auth_header[7:].strip()
                if token:
                    return token
        return request.cookies.get(self.cookie_name) or None

    def cookie_options(self) -> dict:
        if self._production:
            return {"httponly": True, "samesite": "none", "secure": True, "path": "/"}
        return {"httponly": True, "samesite": "lax", "secure": False, "path": "/"}

    def set_cookie(self, response, token: str) -> None:
        """Write the JWT as the session cookie; max_age matches the JWT expiry."""
        response.set_cookie(self.cookie_name, value=token, max_age=self.expire_seconds, **self.cookie_options())

    def clear_cookie(self, response) -> None:
        """Expire the session cookie. The token itself stays valid until exp."""
        opts = self.cookie_options()
        response.delete_cookie(
            self.cookie_name,
            path=opts["path"],
            secure=opts["secure"],
            httponly=opts["httponly"],
            samesite=opts["samesite"],
        )
