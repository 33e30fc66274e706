"""
auth/models.py -- Domain dataclasses for credential entities.

Pattern: Data class (pure data container, near-zero logic). Stores and the
account service do the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass

# New ordinary accounts start here. Negative levels are elevated.
DEFAULT_PERMISSION_LEVEL = 1


@dataclass
class Account:
    """A stored user identity.

    login is the identity key carried in bearer tokens and never changes
    after creation. secret_hash is always a bcrypt hash, never the submitted
    password. deleted_at is set by a soft delete; soft-deleted rows are
    invisible to normal lookups but are never physically removed.
    """

    login: str
    username: str
    secret_hash: str
    permission_level: int = DEFAULT_PERMISSION_LEVEL
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
    deleted_at: str | None = None

    @property
    def is_elevated(self) -> bool:
        return self.permission_level < 0


@dataclass
class Device:
    """Device-style credential. Same storage contract as Account, no permissions."""

    login: str
    username: str
    secret_hash: str
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
    deleted_at: str | None = None


@dataclass
class AccountCandidate:
    """Registration input. password is plaintext and only lives until hashing."""

    login: str
    username: str
    password: str
    permission_level: int = DEFAULT_PERMISSION_LEVEL


@dataclass
class AccountPatch:
    """Update input keyed by login.

    Empty username/password and a None permission_level mean "leave as is",
    not "clear the field".
    """

    login: str
    username: str = ""
    password: str = ""
    permission_level: int | None = None
