"""Flask dashboard and Caddy admin client that keep reverse-proxy routes in sync with a SQLite app database."""

__version__ = "0.1.0"
__all__ = ["caddy", "db", "migrate", "models", "sync", "server"]