"""Shared SQLite connection for the application."""

from __future__ import annotations

import os
import sqlite3

DATABASE_FILE = "./data.sqlite3"

_connection: sqlite3.Connection | None = None


class DatabaseConfigError(RuntimeError):
    """Raised when the database is not configured."""


def get_database_handle() -> sqlite3.Connection:
    """Return the shared connection, opening it on first use."""
    global _connection
    if _connection is not None:
        return _connection
    if not os.environ.get("DATABASE_URL"):
        raise DatabaseConfigError(
            "failed to get DSN for database, DATABASE_URL is a required env variable"
        )
    _connection = sqlite3.connect(DATABASE_FILE, check_same_thread=False)
    return _connection


def close_database() -> None:
    """Close the shared connection if it is open."""
    global _connection
    if _connection is not None:
        _connection.close()
        _connection = None