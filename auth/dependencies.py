"""
auth/dependencies.py -- Request-boundary authentication gate.

authenticate_header() is the gate itself: a pure function from the raw
Authorization header value to an AuthenticatedIdentity. It never touches the
account store. The FastAPI Depends() helpers below wrap it for routes:

  get_current_identity() -- valid bearer token required (401 otherwise)
  get_current_account()  -- identity must also resolve to a live account
  require_elevated()     -- account must also be elevated (403 otherwise)

Downstream handlers receive the identity or account as an explicit argument;
nothing is stashed on the request.

Failure surface:
  Missing header                      -> UnauthenticatedError
  Not "Bearer <token>"                -> MalformedHeaderError
  Bad signature / expired / bad claim -> UnauthenticatedError (generic message;
                                         the real reason is logged at DEBUG only)

Layer rule: may import from fastapi (Depends/HTTPException/Request) because
this module is part of the FastAPI dependency injection system. The route
modules under api/ import from here, not the other way around.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import HTTPException, Request

from auth.errors import (
    InvalidTokenError,
    MalformedClaimsError,
    MalformedHeaderError,
    NotFoundError,
    UnauthenticatedError,
)
from auth.models import Account
from auth.tokens import TokenService

logger = logging.getLogger("overseer.auth")

_SCHEME = "bearer"


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """The login a verified bearer token was issued to."""

    login: str


def authenticate_header(header: str | None, tokens: TokenService) -> AuthenticatedIdentity:
    """Validate an Authorization header value and return the identity it proves.

    A header being present does not mean a token is: "Bearer" alone, a
    different scheme, or a value with no separator are all malformed.
    """
    if not header:
        raise UnauthenticatedError("Authentication required.")

    scheme, sep, token = header.strip().partition(" ")
    token = token.strip()
    if not sep or scheme.lower() != _SCHEME or not token:
        raise MalformedHeaderError("Authorization header must be of the form 'Bearer <token>'.")

    try:
        login = tokens.verify(token)
    except (InvalidTokenError, MalformedClaimsError) as exc:
        logger.debug("rejected bearer token (%s): %s", exc.kind.value, exc.message)
        raise UnauthenticatedError("Invalid or expired token.") from None

    return AuthenticatedIdentity(login=login)


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------


def get_current_identity(request: Request) -> AuthenticatedIdentity:
    """Require a valid bearer token. Gate errors propagate to the API error handler.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(identity: AuthenticatedIdentity = Depends(get_current_identity)): ...
    """
    tokens: TokenService = request.app.state.token_service
    return authenticate_header(request.headers.get("Authorization"), tokens)


def get_current_account(request: Request) -> Account:
    """Require a valid token whose login still maps to a live account.

    A token outlives a soft delete, so a removed account presenting a
    still-valid token is treated as unauthenticated.
    """
    identity = get_current_identity(request)
    try:
        return request.app.state.account_service.get(identity.login)
    except NotFoundError:
        raise UnauthenticatedError("Authentication required.") from None


def require_elevated(request: Request) -> Account:
    """Require an elevated account. Raises HTTP 401 if unauthenticated, HTTP 403 if ordinary."""
    account = get_current_account(request)
    if not account.is_elevated:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Administrative access required."},
        )
    return account
