"""
auth/tokens.py -- Password hashing and bearer-token issue/verify.

Security design decisions:
  JWT: python-jose with HS256. A token carries the login claim and an
       absolute expiry (exp = issue time + configured lifespan). Tokens are
       stateless: there is no server-side session table and no revocation
       list. Logging out means the client discards its token.

  Passwords: bcrypt directly, fresh salt per hash. _DUMMY_HASH enables timing
       equalization in AccountService.authenticate() so response time does
       not reveal whether a login exists.

  Config: TokenService receives the Settings object at construction and
       reads the signing secret and lifespan from it on each use. Nothing in
       this module reads the environment. Missing or malformed values raise
       ConfigurationError at first use.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import ConfigurationError, InvalidTokenError, MalformedClaimsError

if TYPE_CHECKING:
    from core.config import Settings

_ALGORITHM = "HS256"
_LOGIN_CLAIM = "login"

# HMAC-SHA256 signing relies on key entropy.
MIN_SECRET_LENGTH = 32

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt ignores input past 72 bytes; validate_password() rejects longer
    passwords before they get here.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash counts as a mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than later ones. Checked against when the login does not exist.
_DUMMY_HASH: str = hash_password("overseer_timing_dummy")


def burn_password_check(plain: str) -> None:
    """Spend one bcrypt comparison without a real hash to compare against."""
    verify_password(plain, _DUMMY_HASH)


# ---------------------------------------------------------------------------
# Token service
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issues and verifies signed, time-limited bearer tokens.

    Usage:
        tokens = TokenService(get_settings())
        token = tokens.issue("alice")
        login = tokens.verify(token)   # "alice"

    clock is injectable so tests can issue tokens that are already expired.
    Verification always checks expiry against the real current time.
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] | None = None) -> None:
        self._settings = settings
        self._clock = clock or _utcnow

    def _signing_key(self) -> str:
        secret = self._settings.secret_token
        if not secret:
            raise ConfigurationError("SECRET_TOKEN is not configured.")
        if len(secret) < MIN_SECRET_LENGTH:
            raise ConfigurationError(f"SECRET_TOKEN must be at least {MIN_SECRET_LENGTH} characters.")
        return secret

    def _lifespan(self) -> timedelta:
        raw = str(self._settings.api_jwt_token_lifespan_minutes).strip()
        if not raw:
            raise ConfigurationError("API_JWT_TOKEN_LIFESPAN_MINUTES is not configured.")
        try:
            minutes = int(raw)
        except ValueError:
            raise ConfigurationError(f"API_JWT_TOKEN_LIFESPAN_MINUTES must be an integer, got {raw!r}.") from None
        if minutes <= 0:
            raise ConfigurationError("API_JWT_TOKEN_LIFESPAN_MINUTES must be positive.")
        return timedelta(minutes=minutes)

    def issue(self, login: str) -> str:
        """Return a signed token binding login to an absolute expiry of now + lifespan."""
        lifespan = self._lifespan()
        key = self._signing_key()
        now = self._clock()
        payload = {
            _LOGIN_CLAIM: login,
            "iat": now,
            "exp": now + lifespan,
        }
        return jwt.encode(payload, key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> str:
        """Check signature, structure, and expiry; return the embedded login.

        No account lookup happens here: the caller decides whether the login
        still has to resolve to a live account.
        """
        key = self._signing_key()
        try:
            payload = jwt.decode(token, key, algorithms=[_ALGORITHM])
        except ExpiredSignatureError:
            raise InvalidTokenError("Token has expired.") from None
        except JWTError:
            raise InvalidTokenError("Token could not be verified.") from None
        login = payload.get(_LOGIN_CLAIM)
        if not isinstance(login, str) or not login:
            raise MalformedClaimsError("Token does not carry a login claim.")
        return login
