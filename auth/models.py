"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; API response shapes live in api/models.py.

Layer rule: no imports from api/ or posts/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class User:
    """A registered account.

    email is unique across all users and always stored normalized (trimmed,
    lower-cased). password_hash is None for OAuth-only accounts -- they have no
    local password and must sign in through the provider.
    """

    name: str
    email: str
    id: int | None = None
    password_hash: str | None = None  # None = OAuth-only user
    profile_picture: str | None = None
    created_at: str | None = None

    @property
    def is_oauth_only(self) -> bool:
        return self.password_hash is None


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a verified session token."""

    user_id: int
    email: str


@dataclass
class OAuthProfile:
    """Provider-neutral view of an external identity.

    emails holds only addresses the provider did not flag as unverified.
    display_name may be empty; the resolver falls back to given/family name.
    """

    subject: str
    display_name: str = ""
    emails: list[str] = field(default_factory=list)
    given_name: str = ""
    family_name: str = ""
    picture: str | None = None


def normalize_email(email: str) -> str:
    return email.strip().lower()
