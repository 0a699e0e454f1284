"""Exceptions raised by the data handler."""

from __future__ import annotations


class DataHandlerError(Exception):
    """Base class for data handler failures."""


class DatabaseConnectionError(DataHandlerError):
    """The connection could not be opened.

    The message never carries the driver's text, which can include host
    and user names.
    """

    def __init__(self, errno: int | None = None):
        self.errno = errno
        message = "Connection failed"
        if errno is not None:
            message = f"{message} (error {errno})"
        super().__init__(message)


class QueryError(DataHandlerError):
    """Malformed SQL, binding mismatch or constraint violation."""


class TransactionStateError(DataHandlerError):
    """Transaction call made in the wrong state (nested begin, idle commit/rollback)."""
