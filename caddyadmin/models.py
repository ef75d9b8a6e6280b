"""Database records for apps, their ports, domains and instances."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Iterable


def join(items: Iterable[str | int], sep: str) -> str:
    """Join strings and integers with ``sep``."""
    parts = []
    for item in items:
        if isinstance(item, bool) or not isinstance(item, (str, int)):
            raise TypeError(f"cannot join value of type {type(item).__name__}")
        parts.append(str(item))
    return sep.join(parts)


def _parse_time(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


_APP_COLUMNS = ("id", "name", "instance_id", "type", "created_at", "updated_at")
_PORT_COLUMNS = ("id", "port", "app_id", "domain_id", "created_at", "updated_at")
_DOMAIN_COLUMNS = ("id", "domain", "app_id", "created_at", "updated_at")
_INSTANCE_COLUMNS = ("id", "password", "base_domain", "is_primary", "created_at", "updated_at")


@dataclass
class App:
    name: str = ""
    instance_id: int = 0
    type: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None

    def save(self, db: sqlite3.Connection) -> App:
        """Insert the app; returns a copy carrying the new id."""
        with db:
            cur = db.execute(
                "insert into apps (name,instance_id,type) values (?,?,?)",
                (self.name, self.instance_id, self.type),
            )
        return replace(self, id=cur.lastrowid)

    @classmethod
    def _from_row(cls, row: tuple[Any, ...]) -> App:
        app_id, name, instance_id, app_type, created, updated = row
        return cls(
            name=name or "",
            instance_id=instance_id or 0,
            type=app_type,
            created_at=_parse_time(created),
            updated_at=_parse_time(updated),
            id=app_id,
        )


def find_all_apps(db: sqlite3.Connection) -> list[App]:
    rows = db.execute(f"select {join(_APP_COLUMNS, ',')} from apps")
    return [App._from_row(row) for row in rows]


def find_app_by_id(db: sqlite3.Connection, app_id: str | int) -> App | None:
    row = db.execute(
        f"select {join(_APP_COLUMNS, ',')} from apps where id = ?", (app_id,)
    ).fetchone()
    return App._from_row(row) if row else None


def delete_app_by_id(db: sqlite3.Connection, app_id: str | int) -> None:
    with db:
        db.execute("delete from apps where id = ?", (app_id,))


@dataclass
class AppPort:
    port: str = ""
    app_id: int = 0
    domain_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None

    def save(self, db: sqlite3.Connection) -> AppPort:
        """Insert the port mapping; returns a copy carrying the new id."""
        with db:
            cur = db.execute(
                "insert into app_ports (port,app_id,domain_id) values(?,?,?)",
                (self.port, self.app_id, self.domain_id),
            )
        return replace(self, id=cur.lastrowid)


def find_port_by_app_id(db: sqlite3.Connection, app_id: str | int) -> AppPort:
    """Return the port of an app; raises LookupError when it has none."""
    row = db.execute(
        f"select {join(_PORT_COLUMNS, ',')} from app_ports where app_id = ? limit 1",
        (app_id,),
    ).fetchone()
    if row is None:
        raise LookupError(f"no port found for app {app_id}")
    port_id, port, owner, domain_id, created, updated = row
    return AppPort(
        port="" if port is None else str(port),
        app_id=owner,
        domain_id=domain_id,
        created_at=_parse_time(created),
        updated_at=_parse_time(updated),
        id=port_id,
    )


def delete_ports_by_app_id(db: sqlite3.Connection, app_id: str | int) -> None:
    with db:
        db.execute("delete from app_ports where app_id = ?", (app_id,))


@dataclass
class Domain:
    domain: str = ""
    app_id: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None

    def save(self, db: sqlite3.Connection) -> Domain:
        """Insert the domain; returns a copy carrying the new id."""
        with db:
            cur = db.execute(
                "insert into domains(domain,app_id) values(?,?)",
                (self.domain, self.app_id),
            )
        return replace(self, id=cur.lastrowid)


def find_domain_by_app_id(db: sqlite3.Connection, app_id: str | int) -> Domain | None:
    row = db.execute(
        f"select {join(_DOMAIN_COLUMNS, ',')} from domains where app_id = ? limit 1",
        (app_id,),
    ).fetchone()
    if row is None:
        return None
    domain_id, domain, owner, created, updated = row
    return Domain(
        domain=domain or "",
        app_id=owner,
        created_at=_parse_time(created),
        updated_at=_parse_time(updated),
        id=domain_id,
    )


@dataclass
class Instance:
    password: str = ""
    base_domain: str | None = None
    is_primary: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None

    def save(self, db: sqlite3.Connection) -> Instance:
        """Insert the instance; returns a copy carrying the new id."""
        with db:
            cur = db.execute(
                "insert into instances (password,is_primary,base_domain) values(?,?,?)",
                (self.password, self.is_primary, self.base_domain),
            )
        return replace(self, id=cur.lastrowid)


def find_instance_by_id(db: sqlite3.Connection) -> Instance | None:
    """Return the first recorded instance, or None when there is none."""
    row = db.execute(
        f"select {join(_INSTANCE_COLUMNS, ',')} from instances order by id limit 1"
    ).fetchone()
    if row is None:
        return None
    instance_id, secret_value, base_domain, is_primary, created, updated = row
    return Instance(
        password=secret_value or "",
        base_domain=base_domain,
        is_primary=bool(is_primary),
        created_at=_parse_time(created),
        updated_at=_parse_time(updated),
        id=instance_id,
    )