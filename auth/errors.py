"""
auth/errors.py -- Error taxonomy shared by the auth and posts layers.

Every error carries the HTTP status it maps to, a machine-readable code and a
user-facing message. api/main.py registers one exception handler for AppError
that renders {"message": ..., "code": ...}; OAuth routes catch OAuthFlowError
themselves and redirect with the code in the query string instead.

Layer rule: no imports from api/ or posts/.
"""

from __future__ import annotations


class AppError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or malformed input. Detected at the boundary, never retried."""

    status_code = 400
    code = "validation_error"
    message = "Invalid request."


class AuthError(AppError):
    status_code = 401
    code = "unauthorized"
    message = "Authentication required."


class NoToken(AuthError):
    code = "no_token"
    message = "Invalid or no token found"


class InvalidToken(AuthError):
    """Bad signature, expired or malformed token -- reported uniformly."""

    code = "invalid_token"
    message = "Invalid token"


class NotFoundOrForbidden(AppError):
    """The row does not exist OR belongs to someone else. One response for both."""

    status_code = 400
    code = "not_found_or_forbidden"
    message = "Not authorized or not found"


class UpstreamError(AppError):
    """The data store failed. Mapped to a generic 500, no retry."""

    status_code = 500
    code = "upstream_error"
    message = "Data store error"


# ---------------------------------------------------------------------------
# OAuth flow -- these redirect to the frontend rather than returning JSON
# ---------------------------------------------------------------------------


class OAuthFlowError(AppError):
    status_code = 302
    code = "oauth_callback_failed"
    message = "OAuth login failed."


class ProviderError(OAuthFlowError):
    """Token exchange with the provider failed or the provider is disabled."""

    code = "oauth_failed"
    message = "OAuth provider rejected the login."


class OAuthProfileError(OAuthFlowError):
    code = "no_user_data"
    message = "OAuth profile is incomplete."


class MissingEmail(OAuthProfileError):
    message = "No email found in OAuth profile"


class MissingName(OAuthProfileError):
    message = "No name found in OAuth profile"


class RegistrationRaceExhausted(OAuthFlowError):
    """Insert hit the unique email constraint and the re-read found nothing.

    Raised `from` the original IntegrityError so the store error stays on
    __cause__ for logging.
    """

    code = "account_exists"
    message = "Could not create or find an account for this email."
