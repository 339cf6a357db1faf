"""
auth/resolver.py -- Map an external OAuth profile to a local user record.

Flow for resolve(profile):
  1. No email on the profile           -> MissingEmail
  2. No usable display name            -> MissingName
  3. Look up the normalized email      -> found: this is a login, return it
  4. Not found: insert an OAuth-only user (password NULL)
  5. Insert hit UNIQUE(email)          -> another request created the account
     between our read and our write. Re-read once; if that also finds nothing,
     raise RegistrationRaceExhausted chained from the IntegrityError.

There is no transaction around 3-5. The database enforces email uniqueness;
this component only recovers from losing the race.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.errors import MissingEmail, MissingName, RegistrationRaceExhausted
from auth.models import OAuthProfile, User, normalize_email
from auth.store import UserStore

logger = logging.getLogger("blogapi.auth.oauth")


def resolve_display_name(profile: OAuthProfile) -> str:
    """Return the display name, else "given family", else ""."""
    name = (profile.display_name or "").strip()
    if name:
        return name
    parts = [p.strip() for p in (profile.given_name, profile.family_name) if p and p.strip()]
    return " ".join(parts)


class OAuthIdentityResolver:
    def __init__(self, user_store: UserStore) -> None:
        self.user_store = user_store

    def resolve(self, profile: OAuthProfile) -> User:
        emails = [e for e in profile.emails if e and e.strip()]
        if not emails:
            raise MissingEmail()
        name = resolve_display_name(profile)
        if not name:
            raise MissingName()

        email = normalize_email(emails[0])
        existing = self.user_store.get_by_email(email)
        if existing is not None:
            logger.info("OAuth login for existing user id=%s", existing.id)
            return existing

        try:
            user_id = self.user_store.create_user(
                User(name=name, email=email, password_hash=None, profile_picture=profile.picture)
            )
        except IntegrityError as exc:
            logger.warning("OAuth user insert conflicted, re-reading by email")
            retry = self.user_store.get_by_email(email)
            if retry is not None:
                return retry
            raise RegistrationRaceExhausted() from exc

        created = self.user_store.get_by_id(user_id)
        if created is None:
            raise RegistrationRaceExhausted()
        logger.info("OAuth user created id=%s", user_id)
        return created
