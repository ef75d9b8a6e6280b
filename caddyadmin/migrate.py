"""Apply ``*.up.sql`` migrations and keep an audit of what ran."""

from __future__ import annotations

import hashlib
import logging
import sqlite3
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path

log = logging.getLogger(__name__)

UP_SUFFIX = ".up.sql"

_CREATE_TABLE = (
    "CREATE TABLE if not exists migrations(id INTEGER PRIMARY KEY AUTOINCREMENT,"
    "name TEXT NOT NULL UNIQUE,hash TEXT,"
    "created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,"
    "updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP);"
)


class MigrationError(Exception):
    """Raised when migrations cannot be read, checked or applied."""


@dataclass(frozen=True)
class Migration:
    name: str
    hash: str


@dataclass
class MigrationCollection:
    db: sqlite3.Connection
    migrations: list[Migration] = field(default_factory=list)

    def load_existing(self, direction: str | None = None) -> list[Migration]:
        """Load the migrations already recorded, creating the table if needed."""
        order = (direction or "asc").lower()
        if order not in ("asc", "desc"):
            raise ValueError(f"invalid direction: {direction!r}")
        try:
            rows = self.db.execute(
                f"select name,hash from migrations order by id {order}"
            ).fetchall()
        except sqlite3.OperationalError as exc:
            if "no such table: migrations" not in str(exc):
                raise MigrationError(
                    f"Failed to get existing migrations with error: {exc}"
                ) from exc
            ensure_migration_table(self.db)
            rows = []
        self.migrations = [Migration(name, file_hash) for name, file_hash in rows]
        return self.migrations

    def has_migration(self, name: str, hash: str) -> bool:
        """Whether ``name`` already ran; a different hash for it is an error."""
        for migration in self.migrations:
            if migration.name != name:
                continue
            if migration.hash == hash:
                return True
            raise MigrationError(
                f"similar named migration with different hashes received, "
                f"{name}:{hash}, (savedHash:{migration.hash})"
            )
        return False


def md5_string(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


def ensure_migration_table(db: sqlite3.Connection) -> None:
    db.execute(_CREATE_TABLE)
    db.commit()


def update_up_audit(db: sqlite3.Connection, executed: dict[str, str]) -> None:
    """Record executed migrations by name and hash."""
    ensure_migration_table(db)
    try:
        with db:
            db.executemany(
                "insert into migrations (name, hash) values (?,?)", executed.items()
            )
    except sqlite3.Error as exc:
        raise MigrationError(f"failed to record migrations: {exc}") from exc


def _run_script(db: sqlite3.Connection, script: str) -> None:
    try:
        db.executescript(f"BEGIN;\n{script}\n;\nCOMMIT;")
    except sqlite3.Error as exc:
        if db.in_transaction:
            db.rollback()
        raise MigrationError(f"migration failed: {exc}") from exc


def migrate_up(db: sqlite3.Connection, directory: str | PathLike[str]) -> dict[str, str]:
    """Run every new ``*.up.sql`` file in ``directory`` in name order.

    Returns a mapping of the files that ran to their hashes.
    """
    collection = MigrationCollection(db)
    collection.load_existing()

    try:
        entries = sorted(Path(directory).iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise MigrationError(f"error reading migrations, {exc}") from exc

    executed: dict[str, str] = {}
    for entry in entries:
        if not entry.name.endswith(UP_SUFFIX):
            continue
        data = entry.read_bytes()
        file_hash = md5_string(data)
        if collection.has_migration(entry.name, file_hash):
            continue
        _run_script(db, data.decode("utf-8"))
        executed[entry.name] = file_hash
        log.info("Ran %s", entry.name)

    update_up_audit(db, executed)
    return executed