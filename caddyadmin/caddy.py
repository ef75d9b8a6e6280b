"""Client for the Caddy admin API and the subset of its config model we use."""

from __future__ import annotations

import json
import logging
import os
import posixpath
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import requests

log = logging.getLogger(__name__)

DEFAULT_CADDY_URL = "http://localhost:2019"
SERVERS_PATH = "/config/apps/http/servers"
REQUEST_TIMEOUT = 30


class CaddyError(Exception):
    """Raised when the Caddy admin API cannot be reached or rejects a request."""


def _list_of(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    return value if isinstance(value, list) else []


@dataclass
class AdminConfig:
    disabled: bool = False
    listen: str = ""
    enforce_origin: bool = False
    origins: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.disabled:
            out["disabled"] = True
        if self.listen:
            out["listen"] = self.listen
        if self.enforce_origin:
            out["enforce_origin"] = True
        if self.origins:
            out["origins"] = list(self.origins)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AdminConfig:
        data = data or {}
        return cls(
            disabled=bool(data.get("disabled", False)),
            listen=data.get("listen") or "",
            enforce_origin=bool(data.get("enforce_origin", False)),
            origins=[str(o) for o in _list_of(data, "origins")],
        )


@dataclass
class Upstream:
    dial: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"dial": self.dial}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Upstream:
        data = data or {}
        return cls(dial=data.get("dial") or "")


@dataclass
class HandleDef:
    handler: str = ""
    upstreams: list[Upstream] = field(default_factory=list)
    routes: list[Route] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.handler:
            out["handler"] = self.handler
        if self.upstreams:
            out["upstreams"] = [u.to_dict() for u in self.upstreams]
        if self.routes:
            out["routes"] = [r.to_dict() for r in self.routes]
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> HandleDef:
        data = data or {}
        return cls(
            handler=data.get("handler") or "",
            upstreams=[Upstream.from_dict(u) for u in _list_of(data, "upstreams")],
            routes=[Route.from_dict(r) for r in _list_of(data, "routes")],
        )


@dataclass
class Match:
    host: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"host": list(self.host)} if self.host else {}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Match:
        data = data or {}
        return cls(host=[str(h) for h in _list_of(data, "host")])


@dataclass
class Route:
    handle: list[HandleDef] = field(default_factory=list)
    match: list[Match] = field(default_factory=list)
    terminal: bool = False

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.handle:
            out["handle"] = [h.to_dict() for h in self.handle]
        if self.match:
            out["match"] = [m.to_dict() for m in self.match]
        if self.terminal:
            out["terminal"] = True
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Route:
        data = data or {}
        return cls(
            handle=[HandleDef.from_dict(h) for h in _list_of(data, "handle")],
            match=[Match.from_dict(m) for m in _list_of(data, "match")],
            terminal=bool(data.get("terminal", False)),
        )


@dataclass
class Server:
    listen: list[str] = field(default_factory=list)
    routes: list[Route] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.listen:
            out["listen"] = list(self.listen)
        if self.routes:
            out["routes"] = [r.to_dict() for r in self.routes]
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Server:
        data = data or {}
        return cls(
            listen=[str(a) for a in _list_of(data, "listen")],
            routes=[Route.from_dict(r) for r in _list_of(data, "routes")],
        )


def _servers_from_mapping(data: Any) -> dict[str, Server]:
    if not isinstance(data, dict):
        return {}
    return {key: Server.from_dict(value) for key, value in data.items()}


@dataclass
class Config:
    """A small subset of the full Caddy configuration.

    ``servers`` is ``None`` when the config has no ``apps`` section.
    """

    admin: AdminConfig | None = None
    servers: dict[str, Server] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.admin is not None:
            out["admin"] = self.admin.to_dict()
        if self.servers is not None:
            http: dict[str, Any] = {}
            if self.servers:
                http["servers"] = {k: v.to_dict() for k, v in self.servers.items()}
            out["apps"] = {"http": http}
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        data = data or {}
        admin_data = data.get("admin")
        admin = AdminConfig.from_dict(admin_data) if isinstance(admin_data, dict) else None
        apps = data.get("apps")
        servers = None
        if isinstance(apps, dict):
            http = apps.get("http")
            servers = _servers_from_mapping(http.get("servers") if isinstance(http, dict) else None)
        return cls(admin=admin, servers=servers)


def servers_from_json(data: str | bytes) -> dict[str, Server]:
    """Parse the JSON text of an ``apps.http.servers`` object."""
    return _servers_from_mapping(json.loads(data))


def servers_to_json(servers: dict[str, Server]) -> str:
    """Serialise servers to the JSON text Caddy expects."""
    return json.dumps({k: v.to_dict() for k, v in servers.items()}, separators=(",", ":"))


def caddy_url(path: str) -> str:
    """Join ``path`` onto the admin base URL taken from ``CADDY_URL``."""
    base = os.environ.get("CADDY_URL") or DEFAULT_CADDY_URL
    parts = urlsplit(base)
    segments = [s for s in f"{parts.path}/{path}".split("/") if s]
    if segments:
        joined = posixpath.normpath("/" + "/".join(segments))
        if path.endswith("/") and not joined.endswith("/"):
            joined += "/"
    else:
        joined = "/" if (parts.path or path) else ""
    return urlunsplit(parts._replace(path=joined))


def _request(method: str, url: str, **kwargs: Any) -> requests.Response:
    try:
        return requests.request(method, url, timeout=REQUEST_TIMEOUT, **kwargs)
    except requests.RequestException as exc:
        raise CaddyError(str(exc)) from exc


def save_config(full_config: bytes | str) -> None:
    """Load a complete configuration into Caddy."""
    resp = _request(
        "POST",
        caddy_url("/load"),
        data=full_config,
        headers={"Content-Type": "application/json"},
    )
    if resp.status_code != 400:
        return
    try:
        payload = resp.json()
    except ValueError as exc:
        log.warning("error decoding: %s", exc)
        return
    message = payload.get("error") if isinstance(payload, dict) else None
    log.info("errorMessage: %s", message)
    if message:
        raise CaddyError(str(message))


def save_servers_config(servers: dict[str, Server]) -> str:
    """Replace the HTTP servers configuration; returns Caddy's response body."""
    resp = _request(
        "POST",
        caddy_url(SERVERS_PATH),
        data=servers_to_json(servers).encode("utf-8"),
        headers={"Content-Type": "application/json"},
    )
    log.info("caddy response: %s", resp.text)
    return resp.text


def get_servers_config() -> dict[str, Server]:
    """Fetch the HTTP servers configuration; empty when Caddy has none."""
    resp = _request("GET", caddy_url(SERVERS_PATH))
    try:
        return servers_from_json(resp.text)
    except ValueError:
        return {}


def get_config_at_path(path: str) -> Any:
    """Fetch the decoded JSON value stored at ``/config/<path>``."""
    resp = _request("GET", caddy_url(posixpath.join("/config/", path.lstrip("/"))))
    try:
        return resp.json()
    except ValueError:
        return None


def get_full_config() -> Config:
    """Fetch the whole configuration."""
    resp = _request("GET", caddy_url("/config/"))
    try:
        data = resp.json()
    except ValueError:
        return Config()
    return Config.from_dict(data if isinstance(data, dict) else None)