# caddyadmin

A small web dashboard for a running Caddy server. It keeps a SQLite
database of apps, the local port each app listens on and the domain it
should be served under. It writes matching reverse-proxy routes into
Caddy through Caddy's admin API.

## Installing

```
pip install .
```

## Configuration

Settings are read from the environment. At start-up, a `.env` file in
the working directory is loaded.

| Variable       | Meaning                                                          | Default                 |
|----------------|------------------------------------------------------------------|-------------------------|
| `DATABASE_URL` | Must be set to any non-empty value; the database is always `./data.sqlite3` | none (required) |
| `CADDY_URL`    | Base URL of Caddy's admin API                                    | `http://localhost:2019` |

## Running

```
caddyadmin [--host HOST] [--port PORT] [--migrations DIR]
```

The defaults are `--host 0.0.0.0`, `--port 8081` and `--migrations ./migrate`.

On start-up the command does the following, in order:

1. It opens the database.
2. It applies every new `*.up.sql` file in the migrations directory, in name order. Each file is recorded in a `migrations` table with its MD5 hash. A file whose name was recorded before with a different hash stops start-up.
3. It syncs the Caddy route for every app already in the database.
4. It serves the dashboard.

Pages and endpoints:

- `/`: home page, showing the ports in use. Unknown paths also show it.
- `/apps`: lists the apps.
- `GET /apps/new`: the form for a new app.
- `POST /apps/new`: creates an app from the form fields `name`, `type` and optional `port`.
- `GET /apps/<id>`: app details.
- `POST /apps/<id>/domain`: sets the app's domain from the form field `domain`, then syncs the app.
- `POST /apps/<id>/sync`: pushes the app's route to Caddy and answers `{"message":"Done"}`.
- `POST /apps/<id>/delete`: removes the app and its ports.
- `/config/editor`: page for editing the full Caddy configuration.
- `GET /fetch-config`: returns the `admin` and `apps.http.servers` parts of Caddy's configuration as JSON.
- `POST /upload-config`: loads the request body into Caddy through `/load`. Other methods get a 405 answer.

Syncing an app does the following:

- It takes the servers listening on `:80` or `:443`.
- On `:80` servers, it drops `file_server` handlers from routes that have no match.
- It adds an `auto-443` server when nothing listens on `:443`.
- On each of these servers, it points the first `reverse_proxy` found inside a `subroute` at `127.0.0.1:<port>`. Where there is none, it adds a new host-matched route for the app's domain.

## What it does not include

The package ships no HTML templates and no SQL migrations.

Pages are rendered from `caddyadmin/views/`, using these templates:

- `Home.html`
- `AppsHome.html`
- `AppsCreate.html`
- `AppsDetails.html`
- `ConfigEditor.html`

When a template is missing, the page shows "failed to render page, please try again later".

Migration files are also your own to write. They must create the `apps`, `app_ports`, `domains` and `instances` tables used by `caddyadmin.models`.

## Using it as a library

```python
from caddyadmin import caddy, sync

servers = caddy.get_servers_config()
sync.apply_app_route(servers, "app.example.com", "127.0.0.1:3000")
caddy.save_servers_config(servers)
```

`sync.sync_config_for_app(app_id)` does the same, using the domain and port stored for that app in the database.

Other modules:

- `caddyadmin.caddy`: the admin API client (`get_full_config`, `get_config_at_path`, `save_config`) and the config dataclasses (`Server`, `Route`, `HandleDef`, `Match`, `Upstream`, `Config`, `AdminConfig`). Failures raise `CaddyError`.
- `caddyadmin.models`: the `App`, `AppPort`, `Domain` and `Instance` records and their lookup functions.
- `caddyadmin.migrate`: `migrate_up(db, directory)`. Failures raise `MigrationError`.
- `caddyadmin.db`: `get_database_handle()` and `close_database()`.
- `caddyadmin.server`: `create_app()` returns the Flask application.

## Tests

```
pip install .[test]
pytest
```