"""
api/main.py -- FastAPI application factory for BlogAPI.

Run with:  uvicorn asgi:app --reload

create_app(settings) builds the app around an explicit Settings instance.
Stateless services (TokenService, CredentialVerifier) are attached to
app.state immediately; anything holding a connection (stores, OAuth client)
is created in the lifespan so startup and shutdown stay symmetric.

Middleware stack (outermost to innermost):
  1. log_requests       -- method, path, status, latency for every request
  2. SessionMiddleware  -- OAuth state storage for authlib (CSRF protection)
  3. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.posts import router as posts_router
from auth.errors import AppError
from auth.oauth import GoogleIdentityProvider
from auth.passwords import CredentialVerifier
from auth.resolver import OAuthIdentityResolver
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings, get_settings
from core.db import create_db_engine
from posts.store import PostStore

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("blogapi.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the database and OAuth client on startup, release them on shutdown.

    Both stores share one engine so posts can join their author.
    """
    settings: Settings = app.state.settings
    logger.info("BlogAPI starting up (environment=%s)", settings.environment)
    engine = create_db_engine(settings.database_url)
    app.state.user_store = UserStore(engine)
    app.state.post_store = PostStore(engine)
    app.state.identity_provider = GoogleIdentityProvider(settings)
    app.state.resolver = OAuthIdentityResolver(app.state.user_store)
    logger.info("Stores initialized (google_oauth=%s)", app.state.identity_provider.enabled)

    yield

    engine.dispose()
    logger.info("BlogAPI shutdown complete")


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every JSON error uses the ErrorResponse envelope: {"message", "code"}.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=code, message=message, detail=detail).model_dump(exclude_none=True),
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render the domain error taxonomy (400/401/500) without leaking internals."""
    return _error(exc.status_code, exc.code, exc.message)


def _describe_validation_errors(errors) -> str:
    """Render field locations and messages only. Raw input values (passwords
    included) never leave the server."""
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg', '')}")
    return "; ".join(parts)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON or a non-integer path id is a 400, not FastAPI's 422."""
    return _error(400, "validation_error", "Request validation failed.", detail=_describe_validation_errors(exc.errors()))


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "rate_limited", "Too many requests.", detail=str(exc.detail))
    response.headers["Retry-After"] = str(retry_after)
    return response


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Last line for store errors a route did not map itself."""
    logger.exception("Unhandled data store error on %s %s", request.method, request.url.path)
    return _error(500, "upstream_error", "Data store error")


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> FastAPI:
    """Assemble the BlogAPI application around an explicit configuration."""
    settings = settings or get_settings()

    app = FastAPI(
        title="BlogAPI",
        description="Blog backend: password and Google sign-in, JWT sessions, owner-scoped posts.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.tokens = TokenService(settings)
    app.state.passwords = CredentialVerifier(rounds=settings.bcrypt_rounds)

    # Starlette wraps middleware in reverse registration order: the last one
    # added is outermost.
    app.add_middleware(SlowAPIMiddleware)
    # authlib keeps the OAuth state value in this session between the
    # authorization redirect and the callback.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        same_site="lax",
        https_only=settings.is_production,
    )
    app.middleware("http")(log_requests)

    # SlowAPI looks for app.state.limiter by convention.
    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(auth_router, tags=["Auth"])
    app.include_router(posts_router, tags=["Posts"])

    @app.get("/health", tags=["Health"])
    def health(request: Request) -> HealthResponse:
        """Return liveness, version and a database ping. No auth, no rate limit."""
        try:
            db_ok = request.app.state.user_store.ping()
        except SQLAlchemyError:
            logger.exception("Health check database ping failed")
            db_ok = False
        return HealthResponse(
            status="healthy" if db_ok else "degraded",
            version=__version__,
            components={"app": "ok", "database": "ok" if db_ok else "error"},
        )

    return app
