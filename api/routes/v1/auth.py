"""
api/routes/v1/auth.py -- Login and current-identity endpoints.

Routes:
  POST /api/v1/auth/login  -- password login; returns a bearer token
  GET  /api/v1/auth/me     -- current account (requires auth)

There is no logout endpoint: tokens are stateless, so logging out means the
client discards its token.

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  AccountService.authenticate() equalizes timing between unknown login and
  wrong password, and raises the same error for both.
  Cache-Control: no-store on login responses.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import AccountResponse, LoginRequest, TokenResponse
from auth.dependencies import get_current_account
from auth.models import Account
from auth.service import AccountService

# Auth policy:
# - POST /api/v1/auth/login: public -- login endpoint must be unauthenticated
# - GET  /api/v1/auth/me:    requires auth (get_current_account)
router = APIRouter()


@limiter.limit(login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=TokenResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Exchange login and password for a bearer token.

    Present the token on later requests as: Authorization: Bearer <access_token>
    InvalidCredentialsError propagates to the AuthError handler as a 401.
    """
    service: AccountService = request.app.state.account_service
    token = service.authenticate(body.login, body.password)
    resp = JSONResponse(status_code=200, content=TokenResponse(access_token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/me", response_model=AccountResponse)
def me(current: Account = Depends(get_current_account)) -> AccountResponse:
    """Return the account the presented token belongs to."""
    return AccountResponse.from_account(current)
