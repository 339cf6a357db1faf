"""
api/routes/auth.py -- Registration, login and session REST endpoints.

Routes:
  POST /auth/register          -- create a password account
  POST /auth/login             -- password login; sets session cookie
  GET  /auth/google            -- redirect to Google sign-in
  GET  /auth/google/callback   -- provider redirect target; sets cookie, redirects to frontend
  POST /auth/logout            -- clears cookie; 200
  GET  /auth/me                -- current user from the session cookie, or {user: null}
  GET  /auth/providers         -- list enabled OAuth providers (public)

Security:
  POST /auth/login is rate-limited to 10 requests/minute per IP.
  Cache-Control: no-store on every response that sets the session cookie.
  Passwords and hashes never appear in a response model.

OAuth failures never return JSON. They redirect to
{FRONTEND_URL}/login?error=<code> where code is the coarse classification
carried by the OAuthFlowError subclass.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from api.limiter import limiter
from api.models import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    OAuthProviderInfo,
    RegisterRequest,
    RegisterResponse,
    UserProfile,
    UserSummary,
)
from auth.dependencies import try_get_cookie_identity
from auth.errors import OAuthFlowError, UpstreamError, ValidationError
from auth.models import User
from auth.oauth import IdentityProvider, get_enabled_providers
from auth.passwords import CredentialVerifier
from auth.resolver import OAuthIdentityResolver
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings

logger = logging.getLogger("blogapi.api.auth")

# Auth policy: every route here is public. /auth/me authenticates itself from
# the cookie and answers {user: null} instead of raising.
router = APIRouter()


# ---------------------------------------------------------------------------
# Password accounts
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: Optional[RegisterRequest] = None) -> RegisterResponse:
    """Create a password account. The response never includes the password."""
    if body is None or not body.name or not body.email or not body.password:
        raise ValidationError("all fields are required")

    user_store: UserStore = request.app.state.user_store
    passwords: CredentialVerifier = request.app.state.passwords
    try:
        password_hash = passwords.hash(body.password)
    except ValueError as exc:
        # bcrypt refuses more than 72 bytes; multi-byte passwords can get there
        raise ValidationError("password is too long") from exc

    try:
        if user_store.get_by_email(body.email) is not None:
            raise ValidationError("user already exists")
        user_id = user_store.create_user(User(name=body.name, email=body.email, password_hash=password_hash))
        created = user_store.get_by_id(user_id)
    except IntegrityError as exc:
        # Lost a race with a concurrent registration for the same email.
        raise ValidationError("user already exists") from exc
    except SQLAlchemyError as exc:
        logger.exception("User insert failed")
        raise UpstreamError("error creating user") from exc

    if created is None:
        raise UpstreamError("error creating user")
    logger.info("Registered user id=%s", created.id)
    return RegisterResponse(message="User created successfully", user=UserSummary.from_user(created))


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit("10/minute")  # must sit UNDER @router so FastAPI registers the limited wrapper
def login(request: Request, body: Optional[LoginRequest] = None) -> JSONResponse:
    """Authenticate with email and password; set the session cookie.

    Missing fields are rejected before the store is touched.
    """
    if body is None or not body.email or not body.password:
        raise ValidationError("Both email and password are required")

    user_store: UserStore = request.app.state.user_store
    passwords: CredentialVerifier = request.app.state.passwords
    tokens: TokenService = request.app.state.tokens

    try:
        user = user_store.get_by_email(body.email)
    except SQLAlchemyError as exc:
        logger.exception("User lookup failed during login")
        raise UpstreamError("Internal server error") from exc

    if user is None:
        raise ValidationError("User not found")
    if user.is_oauth_only:
        raise ValidationError("This account uses Google login. Please sign in with Google.")
    if not passwords.verify(body.password, user.password_hash):
        raise ValidationError("Invalid credentials")

    token = tokens.issue(user.id, user.email)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(message="Login successful", user=UserProfile.from_user(user)).model_dump(),
    )
    tokens.set_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
async def logout(request: Request) -> JSONResponse:
    """Clear the session cookie. There is no server-side revocation list."""
    tokens: TokenService = request.app.state.tokens
    resp = JSONResponse(content={"message": "logout successful"})
    tokens.clear_cookie(resp)
    return resp


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request) -> JSONResponse:
    """Return the user behind the session cookie, or 401 {user: null}."""
    identity = try_get_cookie_identity(request)
    if identity is None:
        return JSONResponse(status_code=401, content={"user": None})

    user_store: UserStore = request.app.state.user_store
    try:
        user = user_store.get_by_id(identity.user_id)
    except SQLAlchemyError as exc:
        logger.exception("User lookup failed for /auth/me")
        raise UpstreamError("Internal server error") from exc
    if user is None:
        return JSONResponse(status_code=401, content={"user": None})
    return JSONResponse(content=MeResponse(user=UserProfile.from_user(user)).model_dump())


@router.get("/auth/providers", response_model=list[OAuthProviderInfo])
async def list_providers(request: Request) -> list[OAuthProviderInfo]:
    """Return the configured OAuth providers so the frontend can render buttons."""
    return [OAuthProviderInfo(**p) for p in get_enabled_providers([request.app.state.identity_provider])]


# ---------------------------------------------------------------------------
# Google OAuth
# ---------------------------------------------------------------------------


def _frontend_redirect(settings: Settings, path: str, **params: str) -> RedirectResponse:
    url = f"{settings.frontend_url.rstrip('/')}{path}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return RedirectResponse(url, status_code=302)


@router.get("/auth/google")
async def google_login(request: Request):
    """Redirect the browser to Google's authorization page."""
    settings: Settings = request.app.state.settings
    provider: IdentityProvider = request.app.state.identity_provider
    if not provider.enabled:
        return _frontend_redirect(settings, "/login", error="oauth_failed")

    redirect_uri = f"{settings.backend_url.rstrip('/')}/auth/google/callback"
    try:
        return await provider.authorize_redirect(request, redirect_uri)
    except OAuthFlowError as exc:
        logger.warning("OAuth redirect failed: %s", exc.message)
        return _frontend_redirect(settings, "/login", error=exc.code)


@router.get("/auth/google/callback", name="google_callback")
async def google_callback(request: Request) -> RedirectResponse:
    """Handle the provider callback, find-or-create the user, set the cookie.

    Flow:
      1. Exchange the code and read the profile (ProviderError on failure).
      2. Resolve the profile to a local user (MissingEmail, MissingName,
         RegistrationRaceExhausted).
      3. Issue a token exactly as password login does and redirect to the
         frontend with the cookie set.
    """
    settings: Settings = request.app.state.settings
    provider: IdentityProvider = request.app.state.identity_provider
    resolver: OAuthIdentityResolver = request.app.state.resolver
    tokens: TokenService = request.app.state.tokens

    try:
        profile = await provider.resolve_profile(request)
        user = resolver.resolve(profile)
    except OAuthFlowError as exc:
        logger.warning("OAuth login rejected (%s): %s", exc.code, exc.message, exc_info=exc.__cause__ is not None)
        return _frontend_redirect(settings, "/login", error=exc.code)
    except SQLAlchemyError:
        logger.exception("OAuth callback failed on the data store")
        return _frontend_redirect(settings, "/login", error="oauth_callback_failed")

    token = tokens.issue(user.id, user.email)
    resp = _frontend_redirect(settings, "/auth/callback", success="true")
    tokens.set_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    logger.info("OAuth login succeeded for user id=%s", user.id)
    return resp
