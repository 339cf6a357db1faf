"""
auth/oauth.py -- Identity provider integration (Authlib, Google OIDC).

The OAuth routes and the identity resolver depend only on the IdentityProvider
protocol below, never on authlib directly. GoogleIdentityProvider is the
production implementation; tests swap in a fake that returns canned profiles.

Security notes:
  OAuth state parameter (CSRF protection) is handled by authlib automatically
  via Starlette SessionMiddleware. The session stores the state between the
  authorization redirect and the callback -- never trust state from query
  params alone.

  Emails the provider explicitly marks unverified (email_verified == false)
  are dropped from the profile.

Layer rule: no imports from api/ or posts/.
"""

from __future__ import annotations

import logging
from typing import Protocol

from authlib.integrations.starlette_client import OAuth, OAuthError

from auth.errors import ProviderError
from auth.models import OAuthProfile
from core.config import Settings

logger = logging.getLogger("blogapi.auth.oauth")

_GOOGLE_DISCOVERY_URL = "https://accounts.google.com/.well-known/openid-configuration"


class IdentityProvider(Protocol):
    """External capability: send the browser to the provider, then read back
    the authenticated profile on the callback request."""

    name: str
    label: str
    enabled: bool

    async def authorize_redirect(self, request, redirect_uri: str): ...

    async def resolve_profile(self, request) -> OAuthProfile: ...


class GoogleIdentityProvider:
    """Google sign-in through OIDC discovery.

    Only registered with authlib when both client id and secret are
    configured; otherwise `enabled` is False and every call raises
    ProviderError.
    """

    name = "google"
    label = "Google"

    def __init__(self, settings: Settings) -> None:
        self._oauth = OAuth()
        self.enabled = settings.google_enabled
        if self.enabled:
            self._oauth.register(
                name="google",
                client_id=settings.google_client_id,
                client_secret=settings.google_client_secret,
                server_metadata_url=_GOOGLE_DISCOVERY_URL,
                client_kwargs={"scope": "openid email profile"},
            )
            logger.info("Google OAuth provider registered")

    def _client(self):
        if not self.enabled:
            raise ProviderError("Google OAuth is not configured.")
        return self._oauth.create_client("google")

    async def authorize_redirect(self, request, redirect_uri: str):
        return await self._client().authorize_redirect(request, redirect_uri)

    async def resolve_profile(self, request) -> OAuthProfile:
        """Exchange the authorization code and map the id_token claims.

        Raises ProviderError if the exchange fails or no userinfo came back.
        """
        client = self._client()
        try:
            token = await client.authorize_access_token(request)
        except OAuthError as exc:
            logger.warning("Google token exchange failed: %s", exc.error)
            raise ProviderError() from exc
        userinfo = token.get("userinfo")
        if not userinfo:
            raise ProviderError("Google OAuth: no userinfo in token response")
        return profile_from_userinfo(userinfo)


def profile_from_userinfo(userinfo: dict) -> OAuthProfile:
    """Normalize OIDC userinfo claims into an OAuthProfile."""
    emails: list[str] = []
    email = userinfo.get("email")
    if email and userinfo.get("email_verified", True) is not False:
        emails.append(email)
    return OAuthProfile(
        subject=str(userinfo.get("sub", "")),
        display_name=userinfo.get("name") or "",
        emails=emails,
        given_name=userinfo.get("given_name") or "",
        family_name=userinfo.get("family_name") or "",
        picture=userinfo.get("picture"),
    )


def get_enabled_providers(providers: list) -> list[dict]:
    """Return {"name", "label"} for every configured provider."""
    return [{"name": p.name, "label": p.label} for p in providers if p.enabled]
