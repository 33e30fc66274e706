"""
auth/errors.py -- Typed error values for the account core.

Every failure the core can report is an AuthError subclass carrying:
  kind     -- ErrorKind member; the transport layer maps it to a status code
  message  -- human-readable text, safe to return to a client
  subject  -- the login the failure concerns, when there is one

Callers branch on the class or on .kind, never on message text.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_FORMAT = "invalid_format"
    WEAK_SECRET = "weak_secret"
    INVALID_INPUT = "invalid_input"
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"
    INVALID_CREDENTIALS = "invalid_credentials"
    OPERATION_NOT_PERMITTED = "operation_not_permitted"
    UNAUTHENTICATED = "unauthenticated"
    INVALID_TOKEN = "invalid_token"
    MALFORMED_CLAIMS = "malformed_claims"
    MALFORMED_HEADER = "malformed_header"
    STORAGE_ERROR = "storage_error"
    CONFIGURATION_ERROR = "configuration_error"


class AuthError(Exception):
    """Base class for all account-core failures."""

    kind: ErrorKind

    def __init__(self, message: str, subject: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.subject = subject

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r}, subject={self.subject!r})"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InvalidFormatError(AuthError):
    kind = ErrorKind.INVALID_FORMAT


class WeakSecretError(AuthError):
    kind = ErrorKind.WEAK_SECRET


class InvalidInputError(AuthError):
    kind = ErrorKind.INVALID_INPUT


# ---------------------------------------------------------------------------
# Account lifecycle
# ---------------------------------------------------------------------------


class AlreadyExistsError(AuthError):
    kind = ErrorKind.ALREADY_EXISTS


class NotFoundError(AuthError):
    kind = ErrorKind.NOT_FOUND


class InvalidCredentialsError(AuthError):
    """Raised for both unknown login and wrong password -- never distinguish."""

    kind = ErrorKind.INVALID_CREDENTIALS


class OperationNotPermittedError(AuthError):
    kind = ErrorKind.OPERATION_NOT_PERMITTED


# ---------------------------------------------------------------------------
# Request authentication
# ---------------------------------------------------------------------------


class UnauthenticatedError(AuthError):
    kind = ErrorKind.UNAUTHENTICATED


class InvalidTokenError(AuthError):
    kind = ErrorKind.INVALID_TOKEN


class MalformedClaimsError(AuthError):
    kind = ErrorKind.MALFORMED_CLAIMS


class MalformedHeaderError(AuthError):
    kind = ErrorKind.MALFORMED_HEADER


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


class StorageError(AuthError):
    """The backing store rejected or failed an operation. subject is the login."""

    kind = ErrorKind.STORAGE_ERROR


class ConfigurationError(AuthError):
    kind = ErrorKind.CONFIGURATION_ERROR
