"""
auth/validation.py -- Format rules for logins, display names, and passwords.

Pure functions: no I/O, no state. Each check raises on the first violated
rule and returns None otherwise, so callers can run them in sequence and
let the first failure short-circuit.

Password policy is a small frozen dataclass so the limits can come from
Settings without the rules reading configuration themselves.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from auth.errors import InvalidFormatError, WeakSecretError

if TYPE_CHECKING:
    from core.config import Settings

LOGIN_MIN_LEN = 3
LOGIN_MAX_LEN = 64
USERNAME_MAX_LEN = 64

# bcrypt only looks at the first 72 bytes of its input.
PASSWORD_MAX_LEN = 72

_LOGIN_RE = re.compile(r"^[A-Za-z0-9._@-]+$")
_DIGIT_RE = re.compile(r"\d")


@dataclass(frozen=True)
class PasswordPolicy:
    min_length: int = 8
    max_length: int = PASSWORD_MAX_LEN
    require_digit: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> PasswordPolicy:
        return cls(
            min_length=settings.password_min_length,
            require_digit=settings.password_require_digit,
        )


DEFAULT_POLICY = PasswordPolicy()


def validate_login(login: str) -> None:
    """Logins are 3-64 characters of letters, digits, and . _ @ -"""
    if not login:
        raise InvalidFormatError("Login must not be empty.", subject=login)
    if len(login) < LOGIN_MIN_LEN:
        raise InvalidFormatError(f"Login must be at least {LOGIN_MIN_LEN} characters.", subject=login)
    if len(login) > LOGIN_MAX_LEN:
        raise InvalidFormatError(f"Login must be at most {LOGIN_MAX_LEN} characters.", subject=login)
    if not _LOGIN_RE.match(login):
        raise InvalidFormatError(
            "Login may only contain letters, digits, and the characters . _ @ -",
            subject=login,
        )


def validate_username(username: str) -> None:
    if not username or not username.strip():
        raise InvalidFormatError("Username must not be empty.")
    if len(username) > USERNAME_MAX_LEN:
        raise InvalidFormatError(f"Username must be at most {USERNAME_MAX_LEN} characters.")


def validate_password(password: str, policy: PasswordPolicy = DEFAULT_POLICY) -> None:
    """Enforce minimum length, the bcrypt length ceiling, and digit presence.

    Length is measured in UTF-8 bytes for the ceiling because that is what
    bcrypt truncates on; the minimum is measured in characters.
    """
    if len(password) < policy.min_length:
        raise WeakSecretError(f"Password must be at least {policy.min_length} characters.")
    if len(password.encode("utf-8")) > policy.max_length:
        raise WeakSecretError(f"Password must be at most {policy.max_length} bytes.")
    if policy.require_digit and not _DIGIT_RE.search(password):
        raise WeakSecretError("Password must contain at least one digit.")
