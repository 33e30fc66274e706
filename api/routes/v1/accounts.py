"""
api/routes/v1/accounts.py -- Account management REST endpoints.

Routes:
  POST   /api/v1/accounts           -- register an account (elevated only)
  GET    /api/v1/accounts           -- page through live accounts (requires auth)
  GET    /api/v1/accounts/{login}   -- one account (requires auth)
  PATCH  /api/v1/accounts/{login}   -- update (the account itself, or elevated)
  DELETE /api/v1/accounts/{login}   -- soft delete (elevated only)

All business rules (validation, uniqueness, the elevated-account guard) are
enforced by AccountService. Handlers only translate between the HTTP shapes
in api/models.py and the domain dataclasses; AuthError subclasses propagate
to the handler in api/main.py.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import AccountCreate, AccountPage, AccountResponse, AccountUpdate
from auth.dependencies import get_current_account, require_elevated
from auth.models import Account, AccountCandidate, AccountPatch
from auth.service import AccountService

router = APIRouter()


def _service(request: Request) -> AccountService:
    return request.app.state.account_service


@router.post("/accounts", response_model=AccountResponse, status_code=201)
def create_account(
    request: Request,
    body: AccountCreate,
    _admin: Account = Depends(require_elevated),
) -> AccountResponse:
    """Register a new ordinary account. Elevated callers only."""
    created = _service(request).register(
        AccountCandidate(
            login=body.login,
            username=body.username,
            password=body.password,
            permission_level=body.permission_level,
        )
    )
    return AccountResponse.from_account(created)


@router.get("/accounts", response_model=AccountPage)
def list_accounts(
    request: Request,
    page: int = 1,
    page_size: int = 50,
    _current: Account = Depends(get_current_account),
) -> AccountPage:
    """List live accounts in creation order. page is 1-indexed."""
    service = _service(request)
    accounts = service.list_accounts(page, page_size)
    return AccountPage(
        items=[AccountResponse.from_account(a) for a in accounts],
        page=page,
        page_size=page_size,
        total=service.store.count(),
    )


@router.get("/accounts/{login}", response_model=AccountResponse)
def get_account(
    request: Request,
    login: str,
    _current: Account = Depends(get_current_account),
) -> AccountResponse:
    return AccountResponse.from_account(_service(request).get(login))


@router.patch("/accounts/{login}", response_model=AccountResponse)
def update_account(
    request: Request,
    login: str,
    body: AccountUpdate,
    current: Account = Depends(get_current_account),
) -> AccountResponse:
    """Update username, password, or permission level.

    Ordinary accounts may only update their own username and password.
    Elevated accounts may update anyone, subject to the service's
    elevated-account guard.
    """
    if current.login != login and not current.is_elevated:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "You may only update your own account."},
        )
    if body.permission_level is not None and not current.is_elevated:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Only administrators may change permission levels."},
        )
    updated = _service(request).update(
        AccountPatch(
            login=login,
            username=body.username,
            password=body.password,
            permission_level=body.permission_level,
        )
    )
    return AccountResponse.from_account(updated)


@router.delete("/accounts/{login}", status_code=204)
def delete_account(
    request: Request,
    login: str,
    _admin: Account = Depends(require_elevated),
) -> Response:
    """Soft-delete an ordinary account. Elevated accounts cannot be removed."""
    service = _service(request)
    service.remove(service.get(login))
    return Response(status_code=204)
