"""Point Caddy's public HTTP servers at an app's local port."""

from __future__ import annotations

import logging

from .caddy import (
    HandleDef,
    Match,
    Route,
    Server,
    Upstream,
    get_servers_config,
    save_servers_config,
)
from .db import get_database_handle
from .models import find_domain_by_app_id, find_port_by_app_id

log = logging.getLogger(__name__)

HTTP_LISTEN = ":80"
HTTPS_LISTEN = ":443"
AUTO_HTTPS_SERVER = "auto-443"
LOCAL_HOST = "127.0.0.1"


def _strip_default_file_server(server: Server) -> None:
    """Drop ``file_server`` handlers from routes that have no match criteria."""
    for route in server.routes:
        if route.match:
            continue
        route.handle = [h for h in route.handle if h.handler != "file_server"]


def _public_server_keys(servers: dict[str, Server]) -> list[str]:
    """Keys of servers listening on :80 or :443, cleaning up :80 servers."""
    keys = []
    for key, server in servers.items():
        listen = next((a for a in server.listen if a in (HTTP_LISTEN, HTTPS_LISTEN)), None)
        if listen is None:
            continue
        if listen == HTTP_LISTEN:
            _strip_default_file_server(server)
        keys.append(key)
    return keys


def _point_existing_proxy(server: Server, dial_addr: str) -> bool:
    """Retarget the first reverse proxy inside a subroute; False if none exists."""
    for route in server.routes:
        for handle in route.handle:
            if handle.handler != "subroute" or not handle.routes:
                continue
            for sub_route in handle.routes:
                for sub_handle in sub_route.handle:
                    if sub_handle.handler == "reverse_proxy" and sub_handle.upstreams:
                        sub_handle.upstreams[0].dial = dial_addr
                        return True
    return False


def _proxy_route(domain: str, dial_addr: str) -> Route:
    return Route(
        match=[Match(host=[domain])],
        handle=[
            HandleDef(
                handler="subroute",
                routes=[
                    Route(
                        handle=[
                            HandleDef(
                                handler="reverse_proxy",
                                upstreams=[Upstream(dial=dial_addr)],
                            )
                        ]
                    )
                ],
            )
        ],
    )


def apply_app_route(
    servers: dict[str, Server], domain: str, dial_addr: str
) -> dict[str, Server]:
    """Route ``domain`` to ``dial_addr`` on every public server.

    The mapping is changed in place and returned. A server listening on
    :443 is added when none exists.
    """
    keys = _public_server_keys(servers)

    if not any(HTTPS_LISTEN in server.listen for server in servers.values()):
        servers[AUTO_HTTPS_SERVER] = Server(listen=[HTTPS_LISTEN], routes=[])
        keys.append(AUTO_HTTPS_SERVER)

    for key in keys:
        server = servers[key]
        if not _point_existing_proxy(server, dial_addr):
            server.routes.append(_proxy_route(domain, dial_addr))
    return servers


def sync_config_for_app(app_id: str | int) -> dict[str, Server]:
    """Push the routing for one app to Caddy and return the servers sent."""
    servers = get_servers_config()
    db = get_database_handle()
    domain = find_domain_by_app_id(db, app_id)
    port = find_port_by_app_id(db, app_id)
    dial_addr = f"{LOCAL_HOST}:{port.port}"
    apply_app_route(servers, domain.domain if domain else "", dial_addr)
    save_servers_config(servers)
    return servers