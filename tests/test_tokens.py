"""Unit tests for auth/tokens.py -- password hashing and TokenService.

Covers:
- bcrypt hashes are salted and never equal the plaintext
- issue() / verify() round trip returns the login
- expiry: a token verifies inside its lifespan and fails once past it
- wrong key, garbage input, and tampered payloads are InvalidTokenError
- a verified token without a string login claim is MalformedClaimsError
- missing or malformed signing config is ConfigurationError at first use
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.errors import ConfigurationError, InvalidTokenError, MalformedClaimsError
from auth.tokens import TokenService, hash_password, verify_password
from core.config import Settings


def _clock_at(offset: timedelta):
    return lambda: datetime.now(timezone.utc) + offset


class TestPasswordHashing:
    def test_hash_is_not_plaintext_and_is_salted(self):
        first = hash_password("Sup3rSecret!")
        second = hash_password("Sup3rSecret!")
        assert first != "Sup3rSecret!"
        assert first != second

    def test_verify_matches_only_the_right_password(self):
        hashed = hash_password("Sup3rSecret!")
        assert verify_password("Sup3rSecret!", hashed)
        assert not verify_password("wrong", hashed)

    def test_verify_against_malformed_hash_is_false(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")


class TestIssueVerify:
    def test_round_trip_returns_login(self, tokens):
        assert tokens.verify(tokens.issue("alice")) == "alice"

    def test_token_carries_login_and_expiry(self, tokens):
        claims = jwt.get_unverified_claims(tokens.issue("alice"))
        assert claims["login"] == "alice"
        assert "exp" in claims

    def test_verifies_before_lifespan_elapses(self, settings):
        issued_14_minutes_ago = TokenService(settings, clock=_clock_at(timedelta(minutes=-14)))
        token = issued_14_minutes_ago.issue("alice")
        assert TokenService(settings).verify(token) == "alice"

    def test_fails_after_lifespan_elapses(self, settings):
        issued_16_minutes_ago = TokenService(settings, clock=_clock_at(timedelta(minutes=-16)))
        token = issued_16_minutes_ago.issue("alice")
        with pytest.raises(InvalidTokenError):
            TokenService(settings).verify(token)

    def test_token_signed_with_other_key_is_invalid(self, tokens):
        other = TokenService(Settings(secret_token="z" * 40, api_jwt_token_lifespan_minutes="15"))
        with pytest.raises(InvalidTokenError):
            tokens.verify(other.issue("alice"))

    @pytest.mark.parametrize("garbage", ["", "abc", "a.b.c", "Bearer xyz"])
    def test_structurally_malformed_token_is_invalid(self, tokens, garbage):
        with pytest.raises(InvalidTokenError):
            tokens.verify(garbage)

    def test_tampered_payload_is_invalid(self, tokens):
        header, _payload, signature = tokens.issue("alice").split(".")
        forged_payload = tokens.issue("mallory").split(".")[1]
        with pytest.raises(InvalidTokenError):
            tokens.verify(".".join([header, forged_payload, signature]))


class TestMalformedClaims:
    def _sign(self, settings, claims: dict) -> str:
        claims.setdefault("exp", datetime.now(timezone.utc) + timedelta(minutes=5))
        return jwt.encode(claims, settings.secret_token, algorithm="HS256")

    def test_missing_login_claim(self, settings, tokens):
        with pytest.raises(MalformedClaimsError):
            tokens.verify(self._sign(settings, {"user": "alice"}))

    def test_non_string_login_claim(self, settings, tokens):
        with pytest.raises(MalformedClaimsError):
            tokens.verify(self._sign(settings, {"login": 42}))


class TestConfiguration:
    @pytest.mark.parametrize("lifespan", ["", "  ", "fifteen", "1.5", "0", "-3"])
    def test_bad_lifespan_fails_issue(self, lifespan):
        svc = TokenService(Settings(secret_token="k" * 40, api_jwt_token_lifespan_minutes=lifespan))
        with pytest.raises(ConfigurationError):
            svc.issue("alice")

    def test_missing_secret_fails_issue_and_verify(self):
        svc = TokenService(Settings(secret_token="", api_jwt_token_lifespan_minutes="15"))
        with pytest.raises(ConfigurationError):
            svc.issue("alice")
        with pytest.raises(ConfigurationError):
            svc.verify("anything")

    def test_short_secret_rejected(self):
        svc = TokenService(Settings(secret_token="too-short", api_jwt_token_lifespan_minutes="15"))
        with pytest.raises(ConfigurationError):
            svc.issue("alice")

    def test_debug_mode_generates_secret(self):
        settings = Settings(debug=True, secret_token="", api_jwt_token_lifespan_minutes="15")
        assert len(settings.secret_token) == 64
        svc = TokenService(settings)
        assert svc.verify(svc.issue("alice")) == "alice"
