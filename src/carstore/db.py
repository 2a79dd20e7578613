"""
Database connection and query utilities.

Provides a small interface for executing parameterized queries with psycopg,
returning rows as dictionaries or the affected row count. Driver errors are
classified here so callers only ever see carstore errors.

For testing, use set_connection_override() to inject a connection that will
be used instead of creating new ones. This enables transaction rollback
between tests.
"""

import logging
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg import errors as pg_errors
from psycopg.rows import dict_row

from carstore.errors import InvalidArgument, StoreFailure


class Database:
    """
    psycopg-backed query executor.

    Args:
        database_url: libpq connection string
        logger: Logger for driver failures
    """

    def __init__(self, database_url: str, logger: logging.Logger = None):
        self.database_url = database_url
        self.logger = logger or logging.getLogger(__name__)
        self._connection_override: psycopg.Connection | None = None

    # =========================================================================
    # Connection Override (for testing)
    # =========================================================================

    def set_connection_override(self, conn: psycopg.Connection) -> None:
        """
        Set a connection to use instead of creating new ones.

        Used by test fixtures to ensure all database operations run
        within a single transaction that can be rolled back.
        """
        self._connection_override = conn

    def clear_connection_override(self) -> None:
        """Clear the connection override, restoring normal behavior."""
        self._connection_override = None

    # =========================================================================
    # Connection Management
    # =========================================================================

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections.

        In normal operation:
            - Opens a new connection
            - Commits on successful exit
            - Rolls back on exception
            - Closes connection when done

        With override set (testing):
            - Returns the override connection
            - Does NOT commit, rollback, or close
            - Caller (test fixture) manages the transaction
        """
        if self._connection_override is not None:
            yield self._connection_override
            return

        try:
            conn = psycopg.connect(self.database_url)
        except psycopg.Error as e:
            raise self._classify(e, "connect") from e

        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # =========================================================================
    # Query Helpers
    # =========================================================================

    def fetch_all(self, query: str, params: tuple = None) -> list[dict[str, Any]]:
        """
        Execute a query and return all rows as list of dicts.

        Args:
            query: SQL query with %s placeholders
            params: Tuple of parameter values

        Returns:
            List of dicts, empty list if no rows found
        """
        with self.get_connection() as conn:
            try:
                with self._savepoint(conn):
                    with conn.cursor(row_factory=dict_row) as cur:
                        cur.execute(query, params)
                        return cur.fetchall()
            except psycopg.Error as e:
                raise self._classify(e, "fetch_all") from e

    def execute(self, query: str, params: tuple = None) -> int:
        """
        Execute a write query.

        Args:
            query: SQL query with %s placeholders
            params: Tuple of parameter values

        Returns:
            Number of rows affected
        """
        with self.get_connection() as conn:
            try:
                with self._savepoint(conn):
                    with conn.cursor() as cur:
                        cur.execute(query, params)
                        return cur.rowcount
            except psycopg.Error as e:
                raise self._classify(e, "execute") from e

    @contextmanager
    def _savepoint(self, conn: psycopg.Connection):
        # An overridden connection is shared across calls; a failed statement
        # must not poison the surrounding test transaction.
        if self._connection_override is None:
            yield
            return
        with conn.transaction():
            yield

    def _classify(self, exc: psycopg.Error, operation: str):
        self.logger.error("database error during %s: %s", operation, exc)
        if isinstance(exc, pg_errors.UniqueViolation):
            return InvalidArgument(
                "car with this registration number already exists", operation=operation
            )
        if isinstance(exc, (pg_errors.DataError, pg_errors.CheckViolation)):
            return InvalidArgument("invalid value for a car field", operation=operation)
        return StoreFailure(str(exc), operation=operation)
