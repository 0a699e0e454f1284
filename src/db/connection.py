"""Database connection management — one MySQL connection per DataHandler."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Generator

import mysql.connector
from mysql.connector import errors as mysql_errors
from mysql.connector.constants import ClientFlag

from src.config import AppConfig, DatabaseConfig
from src.db.encoding import normalize_result
from src.db.errors import (
    DatabaseConnectionError,
    DataHandlerError,
    QueryError,
    TransactionStateError,
)
from src.db.params import Bindings, compile_query, interpolate, sanitize_bindings, sanitize_value

logger = logging.getLogger(__name__)

# Driver errors that mean the link itself is gone; these are not query faults
_CONNECTIVITY_ERRORS = (mysql_errors.OperationalError, mysql_errors.InterfaceError)


class DataHandler:
    """Runs parameterized queries and transactions over a single MySQL connection.

    Statements are prepared on the server and values are bound there, so
    query text is never built by string interpolation. Use as a context
    manager to guarantee the connection is released::

        with DataHandler(config) as db:
            rows = db.get_query("SELECT * FROM users WHERE id = :id", {":id": 5})
    """

    def __init__(self, config: AppConfig | None = None):
        self.config = config if config is not None else AppConfig.from_yaml()
        self._conn = self._connect(self.config.database)

    @staticmethod
    def _connect(db_config: DatabaseConfig) -> Any:
        try:
            conn = mysql.connector.connect(
                host=db_config.host,
                port=db_config.port,
                database=db_config.name,
                user=db_config.user,
                password=db_config.password,
                charset=db_config.charset,
                use_unicode=True,
                connection_timeout=db_config.connect_timeout,
                # UPDATE/DELETE report matched rows, not only changed ones
                client_flags=[ClientFlag.FOUND_ROWS],
                autocommit=True,
            )
        except mysql_errors.Error as exc:
            logger.error("Database connection failed (errno=%s)", exc.errno)
            raise DatabaseConnectionError(exc.errno) from None
        logger.info("Connected to MySQL database %r", db_config.name)
        return conn

    @property
    def connection(self) -> Any:
        if self._conn is None:
            raise DataHandlerError("DataHandler is closed")
        return self._conn

    def close(self) -> None:
        """Release the connection. Safe to call more than once."""
        if self._conn is None:
            return
        try:
            self._conn.close()
        finally:
            self._conn = None
            logger.debug("Database connection closed")

    def __enter__(self) -> DataHandler:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    sanitize_value = staticmethod(sanitize_value)

    @contextmanager
    def _cursor(self) -> Generator[Any, None, None]:
        """Prepared, dict-returning cursor; statement errors become QueryError."""
        cursor = self.connection.cursor(prepared=True, dictionary=True)
        try:
            yield cursor
        except _CONNECTIVITY_ERRORS:
            raise
        except mysql_errors.Error as exc:
            raise QueryError(str(exc)) from exc
        finally:
            cursor.close()

    def get_query(
        self,
        query: str,
        bindings: Bindings | None = None,
        fetch_one: bool = False,
    ) -> list[dict[str, Any]] | dict[str, Any] | None:
        """Run a SELECT and return its rows.

        Args:
            query: SQL with ``:name`` placeholders.
            bindings: Values for the placeholders; strings are sanitized.
            fetch_one: Return only the first row (or None) instead of a list.

        Returns:
            A list of row dicts (empty when nothing matched), or with
            ``fetch_one`` a single row dict or None.
        """
        sql, params = compile_query(query, sanitize_bindings(bindings))
        with self._cursor() as cursor:
            cursor.execute(sql, params)
            # Every row is read so the statement can be closed cleanly
            rows = cursor.fetchall()

        if fetch_one:
            result = rows[0] if rows else None
        else:
            result = list(rows)
        return normalize_result(result, self.config.encoding_detect_order)

    def exec_query(self, query: str, bindings: Bindings | None = None) -> int | bool:
        """Run an INSERT, UPDATE or DELETE.

        Returns the generated id when the query text contains "insert"
        (case-insensitive, anywhere in the string), otherwise True when at
        least one row matched and False when none did.
        """
        sql, params = compile_query(query, sanitize_bindings(bindings))
        with self._cursor() as cursor:
            cursor.execute(sql, params)
            if "insert" in query.lower():
                return cursor.lastrowid
            return cursor.rowcount > 0

    # ── transactions ─────────────────────────────────────────────────────────

    def begin_transaction(self) -> None:
        if self.connection.in_transaction:
            raise TransactionStateError("A transaction is already active")
        self.connection.start_transaction()

    def commit(self) -> None:
        if not self.connection.in_transaction:
            raise TransactionStateError("No active transaction to commit")
        self.connection.commit()

    def roll_back(self) -> None:
        if not self.connection.in_transaction:
            raise TransactionStateError("No active transaction to roll back")
        self.connection.rollback()

    def in_transaction(self) -> bool:
        return bool(self.connection.in_transaction)

    @contextmanager
    def transaction(self) -> Generator[DataHandler, None, None]:
        """Begin a transaction, commit on success, roll back and re-raise on error."""
        self.begin_transaction()
        try:
            yield self
        except BaseException:
            if self.in_transaction():
                self.roll_back()
            raise
        self.commit()

    # ── debugging ────────────────────────────────────────────────────────────

    def log_query(self, query: str, bindings: Bindings | None = None) -> str | None:
        """Render the query with bound values inlined, for reading only.

        Returns None when ``debug_query`` is off. The rendered text is
        never executed.
        """
        if not self.config.debug_query:
            return None
        rendered = interpolate(query, bindings)
        logger.debug("Query: %s", rendered)
        return rendered
