"""
auth/store.py -- SQLAlchemy Core persistence layer for user identities.

Pattern: Repository + Data Mapper.
CredentialStore is the repository; _row_to_identity is the mapper.
Service and route code never touches SQL directly.

Uniqueness:
  register() is a single INSERT guarded by the UNIQUE constraint on username.
  There is no SELECT-then-INSERT: two concurrent registrations of the same
  name race inside the database, exactly one commits, and the loser gets
  IntegrityError, which is surfaced as DuplicateUsername.

Failures:
  Any other SQLAlchemyError is re-raised as StorageError with the original
  exception chained. The store never retries.

Security:
  All queries use bound parameters. No f-strings in SQL.

DB path: auth/credcore_auth.db unless DATABASE_URL is configured.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateUsername, StorageError
from auth.models import UserIdentity

logger = logging.getLogger("credcore.store")

DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'credcore_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),  # uuid4 hex
    Column("username", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked by a writer.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for UserIdentity records.

    Usage:
        store = CredentialStore("sqlite:///users.db")
        identity = store.register("alice", hasher.hash("s3cr3t"))
        store.find_by_username("alice")
        store.close()
    """

    def __init__(self, db_url: str = DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageError() from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def register(self, username: str, password_hash: str) -> UserIdentity:
        """Insert a new identity and return it.

        Raises DuplicateUsername if the username is taken (including when a
        concurrent request committed it first), StorageError on any other
        database failure.
        """
        identity = UserIdentity(
            id=uuid.uuid4().hex,
            username=username,
            password_hash=password_hash,
            created_at=_now_iso(),
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=identity.id,
                        username=identity.username,
                        password_hash=identity.password_hash,
                        created_at=identity.created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateUsername() from exc
        except SQLAlchemyError as exc:
            logger.error("Insert into users failed: %s", type(exc).__name__)
            raise StorageError() from exc
        return identity

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_username(self, username: str) -> UserIdentity | None:
        """Look up an identity by exact username (case-sensitive). Returns None if not found."""
        return self._fetch_one(_users.select().where(_users.c.username == username))

    def find_by_id(self, user_id: str) -> UserIdentity | None:
        """Look up an identity by primary key. Returns None if not found."""
        return self._fetch_one(_users.select().where(_users.c.id == user_id))

    def count_users(self) -> int:
        try:
            with self.engine.connect() as conn:
                result = conn.execute(select(func.count()).select_from(_users)).scalar()
        except SQLAlchemyError as exc:
            raise StorageError() from exc
        return result or 0

    def ping(self) -> bool:
        """Return True if the users table answers a read. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(select(_users.c.id).limit(1)).fetchone()
        except SQLAlchemyError:
            logger.warning("Credential store health check failed", exc_info=True)
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()

    def _fetch_one(self, query) -> UserIdentity | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(query).fetchone()
        except SQLAlchemyError as exc:
            logger.error("Query on users failed: %s", type(exc).__name__)
            raise StorageError() from exc
        return _row_to_identity(row) if row is not None else None


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_identity(row) -> UserIdentity:
    return UserIdentity(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )
