"""
auth/store.py -- SQLAlchemy Core persistence layer for credential entities.

Pattern: Repository + Data Mapper.
AccountStore and DeviceStore are the repositories; _row_to_account /
_row_to_device are the mappers. Service and route code never touches SQL.

Soft delete:
  Removal sets deleted_at; rows are never physically deleted. Every read
  filters on deleted_at IS NULL, so a soft-deleted record behaves as absent.

Uniqueness:
  login is unique among live rows via a partial unique index
  (WHERE deleted_at IS NULL), which SQLite and PostgreSQL both support. A
  soft-deleted login can therefore be registered again. The index is the
  authoritative guard -- the service's pre-insert lookup is only a fast path,
  so create() turns an IntegrityError into AlreadyExistsError.

Errors:
  Every other SQLAlchemyError is re-raised as StorageError carrying the
  login, with the original exception chained for diagnostics.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import AlreadyExistsError, InvalidInputError, StorageError
from auth.models import DEFAULT_PERMISSION_LEVEL, Account, Device

logger = logging.getLogger("overseer.store")

# SQLite INTEGER (and PostgreSQL BIGINT) ceiling for LIMIT and OFFSET values.
MAX_ROW_INDEX = 2**63 - 1

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("login", String(64), nullable=False),
    Column("username", String(64), nullable=False),
    Column("secret_hash", Text, nullable=False),
    Column("permission_level", Integer, nullable=False, server_default=str(DEFAULT_PERMISSION_LEVEL)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("deleted_at", String(32)),
)

Index(
    "uq_accounts_live_login",
    _accounts.c.login,
    unique=True,
    sqlite_where=_accounts.c.deleted_at.is_(None),
    postgresql_where=_accounts.c.deleted_at.is_(None),
)

_devices = Table(
    "devices",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("login", String(64), nullable=False),
    Column("username", String(64), nullable=False),
    Column("secret_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("deleted_at", String(32)),
)

Index(
    "uq_devices_live_login",
    _devices.c.login,
    unique=True,
    sqlite_where=_devices.c.deleted_at.is_(None),
    postgresql_where=_devices.c.deleted_at.is_(None),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _make_engine(db_url: str) -> Engine:
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    _metadata.create_all(engine)
    return engine


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class _CredentialStore:
    """Shared find/create/save/soft-delete over one credential table.

    Subclasses set _table and _entity, and supply the row mapper plus the
    column values written on insert and update.
    """

    _table: Table
    _entity: str

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = _make_engine(db_url)

    def _map(self, row):
        raise NotImplementedError

    def _insert_values(self, record) -> dict:
        return {"login": record.login, "username": record.username, "secret_hash": record.secret_hash}

    def _update_values(self, record) -> dict:
        return {"username": record.username, "secret_hash": record.secret_hash}

    def _live(self):
        return self._table.c.deleted_at.is_(None)

    def find_by_login(self, login: str):
        """Look up a live record by exact login (case-sensitive). Returns None if absent.

        None means "no such live record"; a database failure raises
        StorageError instead, so callers can tell the two apart.
        """
        t = self._table
        try:
            with self.engine.connect() as conn:
                row = conn.execute(select(t).where((t.c.login == login) & self._live())).fetchone()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to look up {self._entity} '{login}'.", subject=login) from exc
        return self._map(row) if row is not None else None

    def create(self, record):
        """Insert a new record and return a copy with id and timestamps filled in.

        Raises AlreadyExistsError if a live record already holds the login.
        """
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    self._table.insert().values(
                        **self._insert_values(record),
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
                new_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise AlreadyExistsError(
                f"{self._entity.capitalize()} '{record.login}' already exists.", subject=record.login
            ) from exc
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to create {self._entity} '{record.login}'.", subject=record.login) from exc
        return dataclasses.replace(
            record,
            id=new_id,
            created_at=now,
            updated_at=now,
            deleted_at=None,
        )

    def save(self, record) -> None:
        """Persist the mutable fields of an existing live record and stamp updated_at."""
        t = self._table
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    t.update()
                    .where((t.c.id == record.id) & self._live())
                    .values(**self._update_values(record), updated_at=now)
                )
                conn.commit()
                updated = result.rowcount
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to update {self._entity} '{record.login}'.", subject=record.login) from exc
        if updated == 0:
            raise self._vanished(record)
        record.updated_at = now

    def soft_delete(self, record) -> None:
        """Mark the record deleted. It stays in the table but drops out of every lookup."""
        t = self._table
        now = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    t.update().where((t.c.id == record.id) & self._live()).values(deleted_at=now, updated_at=now)
                )
                conn.commit()
                updated = result.rowcount
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to remove {self._entity} '{record.login}'.", subject=record.login) from exc
        if updated == 0:
            raise self._vanished(record)
        record.deleted_at = now

    def _vanished(self, record) -> StorageError:
        # Row was soft-deleted (or never stored) between the caller's lookup and this write.
        logger.warning("%s '%s' (id=%s) matched no live row", self._entity, record.login, record.id)
        return StorageError(f"{self._entity.capitalize()} '{record.login}' is no longer stored.", subject=record.login)

    def close(self) -> None:
        self.engine.dispose()


class AccountStore(_CredentialStore):
    """Repository for Account records.

    Usage:
        store = AccountStore("sqlite:///overseer.db")
        created = store.create(Account(login="alice", username="Alice", secret_hash=hash_password("...")))
        account = store.find_by_login("alice")
        store.close()
    """

    _table = _accounts
    _entity = "account"

    def _map(self, row) -> Account:
        return _row_to_account(row)

    def _insert_values(self, record: Account) -> dict:
        values = super()._insert_values(record)
        values["permission_level"] = record.permission_level
        return values

    def _update_values(self, record: Account) -> dict:
        values = super()._update_values(record)
        values["permission_level"] = record.permission_level
        return values

    def list_limited(self, limit: int) -> list[Account]:
        """Return up to limit live accounts in insertion order."""
        if limit < 0:
            raise InvalidInputError("Limit must not be negative.")
        if limit > MAX_ROW_INDEX:
            raise InvalidInputError("Limit is too large.")
        return self._select_live(limit=limit, offset=0)

    def list_page(self, page: int, page_size: int) -> list[Account]:
        """Return one 1-indexed page of live accounts in insertion order."""
        if page_size <= 0:
            raise InvalidInputError("Page size must be positive.")
        if page < 1:
            raise InvalidInputError("Page numbers start at 1.")
        offset = (page - 1) * page_size
        if page_size > MAX_ROW_INDEX or offset > MAX_ROW_INDEX:
            raise InvalidInputError("Page is out of range.")
        return self._select_live(limit=page_size, offset=offset)

    def count(self) -> int:
        try:
            with self.engine.connect() as conn:
                result = conn.execute(select(func.count()).select_from(_accounts).where(self._live())).scalar()
        except SQLAlchemyError as exc:
            raise StorageError("Failed to count accounts.") from exc
        return result or 0

    def _select_live(self, limit: int, offset: int) -> list[Account]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(
                    select(_accounts).where(self._live()).order_by(_accounts.c.id).offset(offset).limit(limit)
                ).fetchall()
        except SQLAlchemyError as exc:
            raise StorageError("Failed to list accounts.") from exc
        return [_row_to_account(r) for r in rows]


class DeviceStore(_CredentialStore):
    """Repository for Device credentials. Storage only -- no service layer on top."""

    _table = _devices
    _entity = "device"

    def _map(self, row) -> Device:
        return _row_to_device(row)


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        login=row.login,
        username=row.username,
        secret_hash=row.secret_hash,
        permission_level=row.permission_level,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
    )


def _row_to_device(row) -> Device:
    return Device(
        id=row.id,
        login=row.login,
        username=row.username,
        secret_hash=row.secret_hash,
        created_at=row.created_at,
        updated_at=row.updated_at,
        deleted_at=row.deleted_at,
    )
