"""
tests/test_tokens.py -- Unit tests for TokenService and CredentialVerifier.

Covers:
  - issue()/verify() carry user id and email
  - tampered, wrong-secret, expired and claim-less tokens all raise InvalidToken
  - extract(): Bearer header wins over the cookie; cookie_only ignores the header
  - cookie attributes differ between development and production
  - bcrypt hashing with a configurable cost factor
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from jose import jwt

from auth.errors import InvalidToken
from auth.passwords import CredentialVerifier
from auth.tokens import TokenService


@pytest.fixture
def settings(settings_factory):
    return settings_factory()


@pytest.fixture
def tokens(settings) -> TokenService:
    return TokenService(settings)


def _request(headers: dict | None = None, cookies: dict | None = None):
    return SimpleNamespace(headers=headers or {}, cookies=cookies or {})


class TestIssueVerify:
    def test_claims_survive_round_trip(self, tokens: TokenService) -> None:
        claims = tokens.verify(tokens.issue(42, "ada@example.com"))
        assert claims.user_id == 42
        assert claims.email == "ada@example.com"

    def test_default_expiry_is_24_hours(self, tokens: TokenService) -> None:
        token = tokens.issue(1, "a@example.com")
        payload = jwt.get_unverified_claims(token)
        remaining = payload["exp"] - datetime.now(timezone.utc).timestamp()
        assert 24 * 3600 - 60 < remaining <= 24 * 3600

    def test_tampered_token_rejected(self, tokens: TokenService) -> None:
        token = tokens.issue(1, "a@example.com")
        forged = tokens.issue(999, "a@example.com")
        head, _body, sig = token.split(".")
        tampered = ".".join([head, forged.split(".")[1], sig])
        with pytest.raises(InvalidToken):
            tokens.verify(tampered)

    def test_wrong_secret_rejected(self, tokens: TokenService, settings_factory) -> None:
        other = TokenService(settings_factory(jwt_secret="another-secret-key-that-is-long-enough-0987654321"))
        with pytest.raises(InvalidToken):
            tokens.verify(other.issue(1, "a@example.com"))

    def test_expired_token_rejected(self, tokens: TokenService, settings) -> None:
        payload = {
            "sub": "1",
            "user_id": 1,
            "email": "a@example.com",
            "exp": datetime.now(timezone.utc) - timedelta(minutes=5),
        }
        expired = jwt.encode(payload, settings.jwt_secret, algorithm="HS256")
        with pytest.raises(InvalidToken):
            tokens.verify(expired)

    def test_missing_claims_rejected(self, tokens: TokenService, settings) -> None:
        payload = {"sub": "1", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)}
        with pytest.raises(InvalidToken):
            tokens.verify(jwt.encode(payload, settings.jwt_secret, algorithm="HS256"))

    def test_garbage_rejected(self, tokens: TokenService) -> None:
        with pytest.raises(InvalidToken) as exc_info:
            tokens.verify("not-a-jwt")
        assert exc_info.value.message == "Invalid token"
        assert exc_info.value.status_code == 401


class TestExtract:
    def test_header_takes_precedence_over_cookie(self, tokens: TokenService) -> None:
        req = _request(headers={"Authorization": "Bearer from-header"}, cookies={"token": "from-cookie"})
        assert tokens.extract(req) == "from-header"

    def test_cookie_used_without_header(self, tokens: TokenService) -> None:
        assert tokens.extract(_request(cookies={"token": "from-cookie"})) == "from-cookie"

    def test_non_bearer_header_ignored(self, tokens: TokenService) -> None:
        req = _request(headers={"Authorization": "Basic dXNlcjpwYXNz"}, cookies={"token": "from-cookie"})
        assert tokens.extract(req) == "from-cookie"

    def test_cookie_only_skips_header(self, tokens: TokenService) -> None:
        req = _request(headers={"Authorization": "Bearer from-header"})
        assert tokens.extract(req, cookie_only=True) is None

    def test_nothing_present(self, tokens: TokenService) -> None:
        assert tokens.extract(_request()) is None


class TestCookiePolicy:
    def test_development_cookie_is_lax(self, tokens: TokenService) -> None:
        assert tokens.cookie_options() == {"httponly": True, "samesite": "lax", "secure": False, "path": "/"}

    def test_production_cookie_is_cross_site_and_secure(self, settings_factory) -> None:
        prod = TokenService(settings_factory(environment="production"))
        assert prod.cookie_options() == {"httponly": True, "samesite": "none", "secure": True, "path": "/"}

    def test_cookie_name_is_configurable(self, settings_factory) -> None:
        svc = TokenService(settings_factory(cookie_name="session"))
        assert svc.extract(_request(cookies={"session": "abc"})) == "abc"


class TestCredentialVerifier:
    def test_hash_and_verify(self) -> None:
        verifier = CredentialVerifier(rounds=4)
        hashed = verifier.hash("hunter22")
        assert hashed != "hunter22"
        assert hashed.startswith("$2b$04$")
        assert verifier.verify("hunter22", hashed)
        assert not verifier.verify("hunter23", hashed)

    def test_hashes_are_salted(self) -> None:
        verifier = CredentialVerifier(rounds=4)
        assert verifier.hash("same") != verifier.hash("same")

    def test_default_cost_factor_is_10(self) -> None:
        assert CredentialVerifier().rounds == 10

    def test_malformed_hash_is_a_mismatch(self) -> None:
        assert not CredentialVerifier(rounds=4).verify("pw", "not-a-bcrypt-hash")
