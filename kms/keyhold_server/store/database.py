"""
SQLite database and transaction handles for Keyhold Server.

This module owns the single SQLite database that stores:
- Clients and groups
- Memberships (client -> group)
- Secret series and their content versions
- Access grants (group -> secret series)

Every operation acquires one Transaction for its whole duration. Store
gateways are constructed against that handle, so a check followed by a
write always happens inside the same atomic unit.

Invariants:
    - All multi-step operations run in a single transaction
    - A transaction commits on normal exit and rolls back on any exception
    - The connection is closed on every exit path
    - Foreign keys are enforced; deletes cascade to dependent rows
    - Names and relation pairs are unique via UNIQUE constraints

How to change safely:
    - Schema changes must be backward compatible (CREATE ... IF NOT EXISTS)
    - Use write=True for every transaction that modifies rows
    - Keep ids inside the 32-bit key range (see check_id)

Table schema:
    clients:
        - id INTEGER PRIMARY KEY
        - name TEXT UNIQUE
        - description, created_at, created_by, updated_at, updated_by
        - enabled INTEGER, automation_allowed INTEGER

    acl_groups:
        - id INTEGER PRIMARY KEY
        - name TEXT UNIQUE
        - description, created_at, created_by, updated_at, updated_by

    memberships:
        - client_id -> clients.id, group_id -> acl_groups.id
        - UNIQUE (client_id, group_id)

    secrets:
        - id INTEGER PRIMARY KEY
        - name TEXT UNIQUE
        - description, created_at, created_by, updated_at, updated_by
        - type TEXT, options_json TEXT

    secrets_content:
        - secret_id -> secrets.id
        - encrypted_content TEXT, version TEXT, metadata_json TEXT
        - UNIQUE (secret_id, version)

    accessgrants:
        - group_id -> acl_groups.id, secret_id -> secrets.id
        - UNIQUE (group_id, secret_id)
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TYPE_CHECKING

from ..errors import ConstraintViolationError, InvalidArgumentError

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

# Keys are stored as 32-bit signed integers.
ID_MIN = -(2**31)
ID_MAX = 2**31 - 1

TABLES = (
    "clients",
    "acl_groups",
    "memberships",
    "secrets",
    "secrets_content",
    "accessgrants",
)


class DatabaseNotInitializedError(Exception):
    """Database file does not exist."""

    pass


def check_id(value: Any, kind: str = "id") -> int:
    """Validate that an identifier fits the store's key range.

    Args:
        value: Identifier to check
        kind: Name used in the error message

    Returns:
        The identifier, unchanged

    Raises:
        InvalidArgumentError: If value is not an int or is out of range
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{kind} must be an integer, got {value!r}", argument=kind)
    if not ID_MIN <= value <= ID_MAX:
        raise InvalidArgumentError(
            f"{kind} {value} is outside the 32-bit key range", argument=kind
        )
    return value


class Transaction:
    """Handle for one open database transaction.

    Stores are constructed against a Transaction so that all reads and
    writes in one operation share the same connection and atomic unit.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(self, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> sqlite3.Cursor:
        """Execute a statement, surfacing integrity errors as constraint violations.

        Raises:
            ConstraintViolationError: If a UNIQUE or foreign key constraint fails
        """
        try:
            return self.conn.execute(sql, params)
        except sqlite3.IntegrityError as e:
            raise ConstraintViolationError(str(e)) from e

    def fetchone(self, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> sqlite3.Row | None:
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()


class Database:
    """SQLite database holding the authorization graph and secrets.

    This class provides:
    - Schema creation
    - Transaction-scoped handles
    - Table statistics

    Thread safety:
        Each transaction opens its own connection.
        SQLite serializes writers; BEGIN IMMEDIATE takes the write lock up front.

    Example:
        >>> db = Database("/var/lib/keyhold/keyhold.db")
        >>> db.initialize()
        >>> with db.transaction(write=True) as tx:
        ...     GroupStore(tx).create("ops", "admin", "Operations")
    """

    def __init__(
        self,
        path: str,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
        cache_size_pages: int = -64000,
    ) -> None:
        """Initialize the database.

        Args:
            path: SQLite database file
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
            cache_size_pages: SQLite cache size (negative = KB)
        """
        self.path = Path(path)
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self.cache_size_pages = cache_size_pages

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        """Create a database from server settings."""
        return cls(
            path=settings.database_path,
            wal_mode=settings.wal_mode,
            busy_timeout_ms=settings.busy_timeout_ms,
            cache_size_pages=settings.cache_size_pages,
        )

    @contextmanager
    def _get_connection(self, create: bool = False) -> Iterator[sqlite3.Connection]:
        """Open a configured connection.

        Args:
            create: Whether to create the database file if missing

        Yields:
            SQLite connection

        Raises:
            DatabaseNotInitializedError: If the file doesn't exist and create=False
        """
        if not create and not self.path.exists():
            raise DatabaseNotInitializedError(f"Database not found: {self.path}")

        self.path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            str(self.path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit by default, explicit transactions
        )
        conn.row_factory = sqlite3.Row

        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            conn.execute(f"PRAGMA cache_size = {self.cache_size_pages}")
            if self.wal_mode:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            conn.execute("PRAGMA foreign_keys = ON")

            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self, write: bool = False) -> Iterator[Transaction]:
        """Acquire a transaction for the duration of the block.

        Args:
            write: Take the write lock immediately (BEGIN IMMEDIATE)

        Yields:
            Transaction handle to build stores against
        """
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
            try:
                yield Transaction(conn)
                conn.execute("COMMIT")
            except Exception:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    def initialize(self) -> None:
        """Create the database file and schema if they don't exist."""
        with self._get_connection(create=True) as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS clients (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    description TEXT NOT NULL DEFAULT '',
                    created_at INTEGER NOT NULL,
                    created_by TEXT NOT NULL DEFAULT '',
                    updated_at INTEGER NOT NULL,
                    updated_by TEXT NOT NULL DEFAULT '',
                    enabled INTEGER NOT NULL DEFAULT 1,
                    automation_allowed INTEGER NOT NULL DEFAULT 0
                );

                CREATE TABLE IF NOT EXISTS acl_groups (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    description TEXT NOT NULL DEFAULT '',
                    created_at INTEGER NOT NULL,
                    created_by TEXT NOT NULL DEFAULT '',
                    updated_at INTEGER NOT NULL,
                    updated_by TEXT NOT NULL DEFAULT ''
                );

                CREATE TABLE IF NOT EXISTS memberships (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    client_id INTEGER NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
                    group_id INTEGER NOT NULL REFERENCES acl_groups(id) ON DELETE CASCADE,
                    created_at INTEGER NOT NULL,
                    UNIQUE (client_id, group_id)
                );

                CREATE INDEX IF NOT EXISTS idx_memberships_group ON memberships(group_id);

                CREATE TABLE IF NOT EXISTS secrets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    description TEXT NOT NULL DEFAULT '',
                    created_at INTEGER NOT NULL,
                    created_by TEXT NOT NULL DEFAULT '',
                    updated_at INTEGER NOT NULL,
                    updated_by TEXT NOT NULL DEFAULT '',
                    type TEXT,
                    options_json TEXT NOT NULL DEFAULT '{}'
                );

                CREATE TABLE IF NOT EXISTS secrets_content (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    secret_id INTEGER NOT NULL REFERENCES secrets(id) ON DELETE CASCADE,
                    encrypted_content TEXT NOT NULL,
                    version TEXT NOT NULL DEFAULT '',
                    created_at INTEGER NOT NULL,
                    created_by TEXT NOT NULL DEFAULT '',
                    updated_at INTEGER NOT NULL,
                    updated_by TEXT NOT NULL DEFAULT '',
                    metadata_json TEXT NOT NULL DEFAULT '{}',
                    UNIQUE (secret_id, version)
                );

                CREATE TABLE IF NOT EXISTS accessgrants (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    group_id INTEGER NOT NULL REFERENCES acl_groups(id) ON DELETE CASCADE,
                    secret_id INTEGER NOT NULL REFERENCES secrets(id) ON DELETE CASCADE,
                    created_at INTEGER NOT NULL,
                    UNIQUE (group_id, secret_id)
                );

                CREATE INDEX IF NOT EXISTS idx_accessgrants_secret ON accessgrants(secret_id);
            """)
        logger.info(f"Initialized database: {self.path}")

    def get_stats(self) -> dict[str, int]:
        """Get row counts per table.

        Returns:
            Dictionary mapping table name to row count
        """
        with self.transaction() as tx:
            return {
                table: tx.fetchone(f"SELECT COUNT(*) FROM {table}")[0] for table in TABLES
            }
