"""Unit tests for auth/validation.py -- login, username, and password rules."""

import pytest

from auth.errors import ErrorKind, InvalidFormatError, WeakSecretError
from auth.validation import PasswordPolicy, validate_login, validate_password, validate_username
from core.config import Settings


class TestValidateLogin:
    @pytest.mark.parametrize("login", ["alice", "bob.smith", "ops-team_2", "a.b@example.org", "abc"])
    def test_accepts_valid_logins(self, login):
        validate_login(login)

    @pytest.mark.parametrize("login", ["", "ab", "x" * 65, "has space", "semi;colon", "slash/", "ünï"])
    def test_rejects_invalid_logins(self, login):
        with pytest.raises(InvalidFormatError) as exc_info:
            validate_login(login)
        assert exc_info.value.kind is ErrorKind.INVALID_FORMAT


class TestValidateUsername:
    def test_accepts_display_names_with_spaces(self):
        validate_username("Alice Liddell")

    @pytest.mark.parametrize("name", ["", "   ", "n" * 65])
    def test_rejects_empty_or_long(self, name):
        with pytest.raises(InvalidFormatError):
            validate_username(name)


class TestValidatePassword:
    def test_short_password_is_weak(self):
        with pytest.raises(WeakSecretError) as exc_info:
            validate_password("abc")
        assert exc_info.value.kind is ErrorKind.WEAK_SECRET

    def test_password_without_digit_is_weak(self):
        with pytest.raises(WeakSecretError):
            validate_password("NoDigitsHere!")

    def test_password_over_bcrypt_limit_is_rejected(self):
        with pytest.raises(WeakSecretError):
            validate_password("1" + "a" * 72)

    def test_strong_password_passes(self):
        validate_password("Sup3rSecret!")

    def test_policy_can_drop_digit_requirement(self):
        validate_password("NoDigitsHere!", PasswordPolicy(require_digit=False))

    def test_policy_from_settings(self):
        policy = PasswordPolicy.from_settings(Settings(password_min_length=12, password_require_digit=False))
        assert policy == PasswordPolicy(min_length=12, require_digit=False)
        with pytest.raises(WeakSecretError):
            validate_password("short1", policy)
