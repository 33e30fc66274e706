"""
auth/service.py -- Account lifecycle orchestration.

AccountService is the only caller of the store's mutating methods. It runs
validation, hashing, and the elevated-account guard before anything is
written, so a rejected request never leaves a partial write behind.

Elevated accounts (permission_level < 0):
  - cannot be registered, patched to a negative level, or downgraded to an
    ordinary level through register()/update();
  - cannot be removed through remove();
  - are created and reconciled only by bootstrap_default_admin(), which uses
    the internal _register()/_apply() paths with allow_elevated=True.

The reconcile runs on every API startup (BOOTSTRAP_ADMIN=true) and resets the
administrator password to the well-known default, discarding any password
change made through update(). Deployments that rotate the admin password set
BOOTSTRAP_ADMIN=false after the first start.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from auth.errors import (
    AlreadyExistsError,
    AuthError,
    InvalidCredentialsError,
    NotFoundError,
    OperationNotPermittedError,
)
from auth.models import Account, AccountCandidate, AccountPatch
from auth.store import AccountStore
from auth.tokens import TokenService, burn_password_check, hash_password, verify_password
from auth.validation import DEFAULT_POLICY, PasswordPolicy, validate_login, validate_password, validate_username

logger = logging.getLogger("overseer.auth")

DEFAULT_ADMIN_LOGIN = "administrator"
DEFAULT_ADMIN_USERNAME = "Administrator"
DEFAULT_ADMIN_PASSWORD = "Password123$"  # noqa: S105 # nosec B105 -- well-known bootstrap credential, rotate after first login
DEFAULT_ADMIN_PERMISSION_LEVEL = -1

_BAD_CREDENTIALS = "Invalid login or password."


class AccountService:
    def __init__(
        self,
        store: AccountStore,
        tokens: TokenService,
        policy: PasswordPolicy = DEFAULT_POLICY,
    ) -> None:
        self.store = store
        self.tokens = tokens
        self.policy = policy

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, login: str) -> Account:
        account = self.store.find_by_login(login)
        if account is None:
            raise NotFoundError(f"Account '{login}' not found.", subject=login)
        return account

    def list_accounts(self, page: int, page_size: int) -> list[Account]:
        return self.store.list_page(page, page_size)

    def list_limited(self, limit: int) -> list[Account]:
        return self.store.list_limited(limit)

    # ------------------------------------------------------------------
    # Registration and login
    # ------------------------------------------------------------------

    def register(self, candidate: AccountCandidate) -> Account:
        """Create an ordinary account.

        Order of checks: existing login, login format, username format,
        password strength, elevated-level guard. The first failure is raised
        and nothing is written.
        """
        return self._register(candidate, allow_elevated=False)

    def _register(self, candidate: AccountCandidate, allow_elevated: bool) -> Account:
        if self.store.find_by_login(candidate.login) is not None:
            raise AlreadyExistsError(f"Account '{candidate.login}' already exists.", subject=candidate.login)

        validate_login(candidate.login)
        validate_username(candidate.username)
        validate_password(candidate.password, self.policy)

        if candidate.permission_level < 0 and not allow_elevated:
            raise OperationNotPermittedError(
                "Elevated accounts cannot be created through registration.", subject=candidate.login
            )

        account = self.store.create(
            Account(
                login=candidate.login,
                username=candidate.username,
                secret_hash=hash_password(candidate.password),
                permission_level=candidate.permission_level,
            )
        )
        logger.info("account '%s' registered", account.login)
        return account

    def authenticate(self, login: str, password: str) -> str:
        """Check credentials and return a freshly issued bearer token.

        Unknown login and wrong password raise the same InvalidCredentialsError,
        and both run exactly one bcrypt comparison, so neither the error nor
        the response time tells a caller whether the login exists.
        """
        account = self.store.find_by_login(login)
        if account is None:
            burn_password_check(password)
            raise InvalidCredentialsError(_BAD_CREDENTIALS)
        if not verify_password(password, account.secret_hash):
            raise InvalidCredentialsError(_BAD_CREDENTIALS)
        return self.tokens.issue(account.login)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def update(self, patch: AccountPatch) -> Account:
        """Apply a partial update to the account named by patch.login.

        A negative permission_level is always refused here, as is moving an
        elevated account to an ordinary level.
        """
        existing = self.store.find_by_login(patch.login)
        if existing is None:
            raise NotFoundError(f"Account '{patch.login}' not found.", subject=patch.login)

        if patch.permission_level is not None:
            if patch.permission_level < 0:
                raise OperationNotPermittedError(
                    "Elevated permission levels cannot be assigned through update.", subject=patch.login
                )
            if existing.is_elevated:
                raise OperationNotPermittedError(
                    "Elevated accounts cannot be downgraded through update.", subject=patch.login
                )

        return self._apply(existing, patch)

    def _apply(self, existing: Account, patch: AccountPatch) -> Account:
        # Validate every supplied field before touching the record.
        if patch.username:
            validate_username(patch.username)
        if patch.password:
            validate_password(patch.password, self.policy)

        if patch.username:
            existing.username = patch.username
        if patch.password:
            existing.secret_hash = hash_password(patch.password)
        if patch.permission_level is not None:
            existing.permission_level = patch.permission_level

        self.store.save(existing)
        logger.info("account '%s' updated", existing.login)
        return existing

    def remove(self, target: Account) -> None:
        """Soft-delete an ordinary account. Elevated accounts are refused."""
        if target.is_elevated:
            raise OperationNotPermittedError("Elevated accounts cannot be removed.", subject=target.login)
        self.store.soft_delete(target)
        logger.info("account '%s' removed", target.login)

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def bootstrap_default_admin(self) -> None:
        """Ensure the reserved administrator account exists with canonical values.

        Idempotent: an existing record is reconciled in place (username,
        password, permission level) rather than duplicated. A failed
        reconcile is logged and does not fail startup; a failed first-time
        registration propagates.

        The reconcile overwrites the administrator password with
        DEFAULT_ADMIN_PASSWORD, so a rotated password does not survive it.
        """
        existing = self.store.find_by_login(DEFAULT_ADMIN_LOGIN)
        if existing is not None:
            patch = AccountPatch(
                login=DEFAULT_ADMIN_LOGIN,
                username=DEFAULT_ADMIN_USERNAME,
                password=DEFAULT_ADMIN_PASSWORD,
                permission_level=DEFAULT_ADMIN_PERMISSION_LEVEL,
            )
            try:
                self._apply(existing, patch)
            except AuthError as exc:
                logger.warning("default admin reconcile failed (%s): %s", exc.kind.value, exc.message)
            return

        self._register(
            AccountCandidate(
                login=DEFAULT_ADMIN_LOGIN,
                username=DEFAULT_ADMIN_USERNAME,
                password=DEFAULT_ADMIN_PASSWORD,
                permission_level=DEFAULT_ADMIN_PERMISSION_LEVEL,
            ),
            allow_elevated=True,
        )
        logger.info("default admin '%s' created", DEFAULT_ADMIN_LOGIN)
