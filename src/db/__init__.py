"""Database layer — MySQL data handler."""

from src.db.connection import DataHandler
from src.db.errors import (
    DatabaseConnectionError,
    DataHandlerError,
    QueryError,
    TransactionStateError,
)

__all__ = [
    "DataHandler",
    "DataHandlerError",
    "DatabaseConnectionError",
    "QueryError",
    "TransactionStateError",
]
