"""Database connection and transaction management for orgtree.

Provides the OrgDB class for managing SQLite database connections with
context manager support and transaction handling.

Design decisions:
- Eager connection: Connection is created on __enter__, not lazily
- Foreign keys enabled via PRAGMA foreign_keys = ON
- Autocommit outside transaction() blocks (isolation_level=None)
- Transactions start with BEGIN IMMEDIATE so the write lock is held from
  the first read; validation and mutation of one operation are serialized
  against other writers
- Not thread-safe: one OrgDB per unit of work
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar, cast

from orgtree.schema import init_database

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BUSY_TIMEOUT = 5.0


class DatabaseError(Exception):
    """Base exception for database-related errors."""


class ConnectionError(DatabaseError):
    """Raised when database connection fails."""


class TransactionError(DatabaseError):
    """Raised when transaction operations fail."""


class OrgDB:
    """Database connection manager for orgtree.

    Example usage:
        >>> with OrgDB("/path/to/orgtree.db") as db:
        ...     with db.transaction():
        ...         db.execute("INSERT INTO employees ...")
        ...         # auto-commit on success, auto-rollback on exception

    Attributes:
        db_path: Path to the SQLite database file.
        auto_init: If True, initialize database if it doesn't exist.
        busy_timeout: Seconds to wait for a competing writer's lock.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        auto_init: bool = True,
        busy_timeout: float = DEFAULT_BUSY_TIMEOUT,
    ) -> None:
        """Initialize OrgDB.

        Args:
            db_path: Path to the SQLite database file.
            auto_init: If True, initialize database schema if file doesn't exist.
            busy_timeout: Seconds to wait for a locked database before failing.
        """
        self.db_path = Path(db_path)
        self.auto_init = auto_init
        self.busy_timeout = busy_timeout
        self._connection: sqlite3.Connection | None = None
        self._in_transaction: bool = False

    def __enter__(self) -> OrgDB:
        """Open database connection.

        Raises:
            ConnectionError: If connection fails.
        """
        self._open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close database connection.

        Does not commit or rollback - that's handled by transaction().
        """
        self._close()

    def _open(self) -> None:
        if self._connection is not None:
            return

        if self.auto_init and not self.db_path.exists():
            try:
                init_database(self.db_path)
            except (sqlite3.Error, OSError) as e:
                raise ConnectionError(f"Failed to initialize database: {e}") from e

        try:
            self._connection = sqlite3.connect(
                str(self.db_path),
                timeout=self.busy_timeout,
                isolation_level=None,
            )
            self._connection.execute("PRAGMA foreign_keys = ON")
            self._connection.row_factory = sqlite3.Row
        except sqlite3.Error as e:
            raise ConnectionError(f"Failed to connect to database: {e}") from e
        logger.debug("Opened database %s", self.db_path)

    def _close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the underlying SQLite connection.

        Raises:
            ConnectionError: If not connected.
        """
        if self._connection is None:
            raise ConnectionError("Database not connected. Use 'with OrgDB(...)' context.")
        return self._connection

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    @property
    def in_transaction(self) -> bool:
        """True if inside a transaction() block."""
        return self._in_transaction

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Transaction context manager.

        Begins an immediate transaction, commits on success, rolls back on
        exception. Nested transaction() blocks are no-ops, so an operation
        composed of other operations still commits exactly once.

        Yields:
            None

        Raises:
            ConnectionError: If not connected to database.
            TransactionError: If transaction operations fail.
        """
        if self._connection is None:
            raise ConnectionError("Database not connected. Use 'with OrgDB(...)' context.")

        if self._in_transaction:
            yield
            return

        self._in_transaction = True
        try:
            self.begin_transaction()
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise
        finally:
            self._in_transaction = False

    def run_in_transaction(self, fn: Callable[[OrgDB], T]) -> T:
        """Run ``fn(self)`` inside one transaction and return its result.

        Args:
            fn: Callable receiving this database.

        Returns:
            Whatever fn returns.
        """
        with self.transaction():
            return fn(self)

    def begin_transaction(self) -> None:
        """Begin a new immediate transaction explicitly.

        For most use cases, prefer the transaction() context manager.

        Raises:
            TransactionError: If BEGIN fails (e.g. the lock wait timed out).
        """
        try:
            self.connection.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise TransactionError(f"Failed to begin transaction: {e}") from e

    def commit(self) -> None:
        """Commit the current transaction.

        Raises:
            TransactionError: If COMMIT fails.
        """
        try:
            self.connection.commit()
        except sqlite3.Error as e:
            raise TransactionError(f"Failed to commit transaction: {e}") from e

    def rollback(self) -> None:
        """Rollback the current transaction.

        Raises:
            TransactionError: If ROLLBACK fails.
        """
        try:
            self.connection.rollback()
        except sqlite3.Error as e:
            raise TransactionError(f"Failed to rollback transaction: {e}") from e

    def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | dict[str, Any] = (),
    ) -> sqlite3.Cursor:
        """Execute a SQL statement.

        Raises:
            ConnectionError: If not connected.
            sqlite3.Error: If execution fails.
        """
        return self.connection.execute(sql, parameters)

    def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | dict[str, Any] = (),
    ) -> sqlite3.Row | None:
        """Execute SQL and fetch one row.

        Returns:
            First row of results, or None if no results.
        """
        cursor = self.execute(sql, parameters)
        result = cursor.fetchone()
        return cast("sqlite3.Row | None", result)

    def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | dict[str, Any] = (),
    ) -> list[sqlite3.Row]:
        """Execute SQL and fetch all rows."""
        cursor = self.execute(sql, parameters)
        return cursor.fetchall()

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists in the database."""
        result = self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None
