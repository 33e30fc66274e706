"""Unit tests for auth/dependencies.py -- authenticate_header().

The gate maps every token failure onto UnauthenticatedError, keeps the
malformed-header case distinct, and never consults the account store.
"""

from datetime import datetime, timedelta, timezone

import pytest

from auth.dependencies import AuthenticatedIdentity, authenticate_header
from auth.errors import MalformedHeaderError, UnauthenticatedError
from auth.tokens import TokenService


class TestAuthenticateHeader:
    def test_valid_bearer_token_yields_identity(self, tokens):
        identity = authenticate_header(f"Bearer {tokens.issue('alice')}", tokens)
        assert identity == AuthenticatedIdentity(login="alice")

    def test_scheme_is_case_insensitive(self, tokens):
        assert authenticate_header(f"bearer {tokens.issue('alice')}", tokens).login == "alice"

    @pytest.mark.parametrize("header", [None, ""])
    def test_missing_header_is_unauthenticated(self, tokens, header):
        with pytest.raises(UnauthenticatedError):
            authenticate_header(header, tokens)

    @pytest.mark.parametrize("header", ["Bearer", "Bearer ", "Bearerabc.def.ghi", "Basic dXNlcjpwdw==", "Token abc"])
    def test_header_without_bearer_token_is_malformed(self, tokens, header):
        with pytest.raises(MalformedHeaderError):
            authenticate_header(header, tokens)

    def test_invalid_token_is_unauthenticated_without_detail(self, tokens):
        with pytest.raises(UnauthenticatedError) as exc_info:
            authenticate_header("Bearer not-a-token", tokens)
        assert "signature" not in exc_info.value.message.lower()
        assert exc_info.value.__cause__ is None

    def test_expired_token_is_unauthenticated(self, settings, tokens):
        stale = TokenService(settings, clock=lambda: datetime.now(timezone.utc) - timedelta(hours=1))
        with pytest.raises(UnauthenticatedError):
            authenticate_header(f"Bearer {stale.issue('alice')}", tokens)

    def test_gate_does_not_require_a_stored_account(self, tokens):
        # No store is involved: any login the token names is returned as-is.
        assert authenticate_header(f"Bearer {tokens.issue('never-registered')}", tokens).login == "never-registered"
