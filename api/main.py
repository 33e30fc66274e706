"""
api/main.py -- FastAPI application entry point for Overseer.

Exposes the account core over HTTP. The core itself (auth/) knows nothing
about HTTP; this module owns the mapping from AuthError kinds to status codes.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. log_requests      -- method, path, status, latency for every request
  2. SlowAPIMiddleware -- enforces per-route rate limits from api.limiter

Lifespan builds the store, token service, and account service once, runs the
default-admin bootstrap, and disposes of the store on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.accounts import router as accounts_router
from api.routes.v1.auth import router as auth_router
from auth.errors import AuthError, ErrorKind
from auth.service import AccountService
from auth.store import AccountStore
from auth.tokens import TokenService
from auth.validation import PasswordPolicy
from core.config import get_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("overseer.api")

# ---------------------------------------------------------------------------
# Error kind -> HTTP status. Every ErrorKind must appear here.
# ---------------------------------------------------------------------------

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_FORMAT: 422,
    ErrorKind.WEAK_SECRET: 422,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.OPERATION_NOT_PERMITTED: 403,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.MALFORMED_CLAIMS: 401,
    ErrorKind.MALFORMED_HEADER: 401,
    ErrorKind.STORAGE_ERROR: 503,
    ErrorKind.CONFIGURATION_ERROR: 500,
}

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the account core on app.state and bootstrap the default admin.

    A bootstrap failure aborts startup: serving without the reserved
    administrator would leave no account able to register others.
    """
    settings = get_settings()
    logger.info("Overseer API starting up")
    store = AccountStore(settings.database_url)
    tokens = TokenService(settings)
    app.state.account_store = store
    app.state.token_service = tokens
    app.state.account_service = AccountService(store, tokens, PasswordPolicy.from_settings(settings))
    if settings.bootstrap_admin:
        app.state.account_service.bootstrap_default_admin()
    logger.info("Account core initialized (accounts=%d)", store.count())

    yield

    store.close()
    logger.info("Overseer API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Overseer API",
    description="Account management and bearer-token authentication.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(accounts_router, prefix="/api/v1", tags=["Accounts"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map an AuthError to its status code and the standard envelope.

    Server-side failures (storage, configuration) are logged with their
    chained cause and reported to the client with a generic message.
    """
    status = STATUS_BY_KIND[exc.kind]
    message = exc.message
    if status >= 500:
        logger.error(
            "%s on %s %s: %s", exc.kind.value, request.method, request.url.path, exc.message, exc_info=exc.__cause__
        )
        message = "The service is temporarily unable to handle this request."
    response = JSONResponse(
        status_code=status,
        content=ErrorResponse(error=ErrorDetail(code=exc.kind.value, message=message)).model_dump(),
    )
    if status == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for HTTPExceptions raised by routes and dependencies.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint -- public, not rate-limited
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)
