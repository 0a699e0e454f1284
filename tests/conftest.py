"""Shared fixtures: a DataHandler wired to a mocked driver connection."""

from __future__ import annotations

import os
from unittest.mock import MagicMock, patch

import pytest

from src.config import AppConfig, DatabaseConfig
from src.db.connection import DataHandler


def _has_mysql_server() -> bool:
    """Check whether a live MySQL server is configured for tests."""
    return bool(os.getenv("DBH_TEST_MYSQL_HOST"))


# ── skip marker ──────────────────────────────────────────────────────────────

skip_without_mysql = pytest.mark.skipif(
    not _has_mysql_server(),
    reason="No MySQL server configured (set DBH_TEST_MYSQL_HOST and friends)",
)


# ── fixtures ─────────────────────────────────────────────────────────────────


def make_config(debug_query: bool = True, encoding_detect_order: list[str] | None = None) -> AppConfig:
    extra = {}
    if encoding_detect_order is not None:
        extra["encoding_detect_order"] = encoding_detect_order
    return AppConfig(
        database=DatabaseConfig(
            host="db.internal",
            name="shop",
            user="shop_rw",
            password="s3cret",
        ),
        debug_query=debug_query,
        **extra,
    )


@pytest.fixture
def config() -> AppConfig:
    return make_config()


@pytest.fixture
def cursor() -> MagicMock:
    cur = MagicMock()
    cur.fetchall.return_value = []
    cur.rowcount = 0
    cur.lastrowid = None
    return cur


@pytest.fixture
def mock_conn(cursor) -> MagicMock:
    """Driver connection whose in_transaction flag follows start/commit/rollback."""
    conn = MagicMock()
    conn.in_transaction = False
    conn.cursor.return_value = cursor

    def _set(active: bool):
        def _apply():
            conn.in_transaction = active

        return _apply

    conn.start_transaction.side_effect = _set(True)
    conn.commit.side_effect = _set(False)
    conn.rollback.side_effect = _set(False)
    return conn


@pytest.fixture
def connect(mock_conn):
    with patch("src.db.connection.mysql.connector.connect", return_value=mock_conn) as m:
        yield m


@pytest.fixture
def handler(config, connect) -> DataHandler:
    return DataHandler(config)


@pytest.fixture
def live_config() -> AppConfig:
    """Config for the live MySQL server named by DBH_TEST_MYSQL_* env vars."""
    return AppConfig(
        database=DatabaseConfig(
            host=os.getenv("DBH_TEST_MYSQL_HOST", "localhost"),
            port=int(os.getenv("DBH_TEST_MYSQL_PORT", "3306")),
            name=os.getenv("DBH_TEST_MYSQL_DATABASE", "test"),
            user=os.getenv("DBH_TEST_MYSQL_USER", "root"),
            password=os.getenv("DBH_TEST_MYSQL_PASSWORD", ""),
        ),
        debug_query=True,
        # The legacy round-trip test stores cp1252 bytes in a VARBINARY column
        encoding_detect_order=["ascii", "utf-8", "cp1252"],
    )
