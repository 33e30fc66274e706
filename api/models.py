"""
API request and response models for Overseer REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Field constraints here only bound input size. Format and strength rules live
in auth/validation.py so the CLI and the API reject the same inputs with the
same error kinds.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import DEFAULT_PERMISSION_LEVEL, Account

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    login: str = Field(max_length=255)
    password: str = Field(max_length=255)


class AccountCreate(BaseModel):
    """Request body for POST /api/v1/accounts.

    Fields are passed through untouched; the password is hashed exactly as sent.
    """

    login: str = Field(max_length=255)
    username: str = Field(max_length=255)
    password: str = Field(max_length=255)
    permission_level: int = DEFAULT_PERMISSION_LEVEL


class AccountUpdate(BaseModel):
    """Request body for PATCH /api/v1/accounts/{login}.

    Omitted or empty fields are left unchanged.
    """

    username: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=255)
    permission_level: Optional[int] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class TokenResponse(BaseModel):
    """Bearer token returned by a successful login."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"


class AccountResponse(BaseModel):
    """Public view of an account. The secret hash is never serialized."""

    model_config = ConfigDict(frozen=True)

    id: int
    login: str
    username: str
    permission_level: int
    is_elevated: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            login=account.login,
            username=account.username,
            permission_level=account.permission_level,
            is_elevated=account.is_elevated,
            created_at=account.created_at or "",
            updated_at=account.updated_at or "",
        )


class AccountPage(BaseModel):
    """Response for GET /api/v1/accounts."""

    model_config = ConfigDict(frozen=True)

    items: list[AccountResponse]
    page: int
    page_size: int
    total: int


class ErrorDetail(BaseModel):
    """Structured error detail included in all error responses."""

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned by all exception handlers."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    status: str = "healthy"
    version: str
