"""Web front-end for managing apps served through Caddy."""

from __future__ import annotations

import argparse
import json
import logging
import sqlite3
from typing import Any

from dotenv import load_dotenv
from flask import Flask, Response, abort, redirect, render_template, request

from .caddy import CaddyError, get_full_config, save_config
from .db import DatabaseConfigError, close_database, get_database_handle
from .migrate import MigrationError, migrate_up
from .models import (
    App,
    AppPort,
    Domain,
    find_all_apps,
    find_app_by_id,
    find_domain_by_app_id,
    find_port_by_app_id,
)
from .sync import sync_config_for_app

log = logging.getLogger(__name__)

DEFAULT_PORT = 8081
RENDER_FAILED = "failed to render page, please try again later"
_SYNC_ERRORS = (CaddyError, LookupError, sqlite3.Error)


def _json(payload: dict[str, Any], status: int = 200) -> Response:
    return Response(
        json.dumps(payload, separators=(",", ":")), status=status, mimetype="application/json"
    )


def _render(name: str, **context: Any) -> str:
    try:
        return render_template(f"{name}.html", **context)
    except Exception as exc:  # any template failure is reported the same way
        log.error("failed with error: %s", exc)
        return RENDER_FAILED


def _sync_quietly(app_id: str | int) -> None:
    try:
        sync_config_for_app(app_id)
    except _SYNC_ERRORS as exc:
        log.warning("failed to sync config for app %s: %s", app_id, exc)


def create_app() -> Flask:
    """Build the Flask application with all routes."""
    app = Flask(__name__, template_folder="views")

    @app.route("/")
    @app.route("/<path:_path>")
    def home(_path: str = "") -> str:
        db = get_database_handle()
        used_ports = {
            app_id: port
            for app_id, port in db.execute("select app_id, port from app_ports")
            if port
        }
        return _render("Home", used_ports=used_ports)

    @app.route("/apps")
    def apps_home() -> str:
        db = get_database_handle()
        try:
            apps = find_all_apps(db)
        except sqlite3.Error as exc:
            log.error("failed with error: %s", exc)
            apps = []
        return _render("AppsHome", apps=apps)

    @app.route("/apps/new", methods=["GET", "POST"])
    def apps_new():
        if request.method == "GET":
            return _render("AppsCreate")

        db = get_database_handle()
        port = request.form.get("port", "")
        candidate = App(
            name=request.form.get("name", ""),
            instance_id=1,
            type=request.form.get("type", ""),
        )
        try:
            record = candidate.save(db)
            if port:
                AppPort(app_id=record.id, port=port).save(db)
        except sqlite3.Error as exc:
            log.error("%s", exc)
            return redirect("/apps/new", code=303)
        return redirect("/apps", code=303)

    @app.route("/apps/<app_id>", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    def app_details(app_id: str):
        if request.method != "GET":
            abort(404)
        db = get_database_handle()
        record = find_app_by_id(db, app_id) or App()
        try:
            ports = find_port_by_app_id(db, app_id)
        except LookupError as exc:
            log.warning("%s", exc)
            return ""
        domain = find_domain_by_app_id(db, app_id) or Domain()
        return _render("AppsDetails", app=record, ports=ports, primary_domain=domain)

    @app.route("/apps/<app_id>/delete", methods=["GET", "POST"])
    def app_delete(app_id: str):
        if request.method != "POST":
            return ""
        try:
            numeric_id = int(app_id)
        except ValueError:
            numeric_id = 0
        db = get_database_handle()
        try:
            with db:
                db.execute("delete from apps where id = ?", (numeric_id,))
                db.execute("delete from app_ports where app_id = ?", (numeric_id,))
        except sqlite3.Error as exc:
            log.error("%s", exc)
        return redirect("/apps", code=303)

    @app.route("/apps/<app_id>/domain", methods=["GET", "POST"])
    def app_domain(app_id: str):
        if request.method != "POST":
            abort(404)
        domain = request.form.get("domain", "")
        db = get_database_handle()
        existing = db.execute(
            "select id from domains where app_id = ? limit 1", (app_id,)
        ).fetchone()
        try:
            with db:
                if existing and existing[0] > 0:
                    db.execute(
                        "update domains set domain = ? where app_id = ?", (domain, app_id)
                    )
                else:
                    db.execute(
                        "insert into domains (domain,app_id) values (?,?)", (domain, app_id)
                    )
        except sqlite3.Error as exc:
            log.error("failed to save domain: %s", exc)
        _sync_quietly(app_id)
        return redirect(f"/apps/{app_id}", code=303)

    @app.route("/apps/<app_id>/sync", methods=["GET", "POST"])
    def app_sync(app_id: str):
        if request.method != "POST":
            abort(404)
        _sync_quietly(app_id)
        return _json({"message": "Done"})

    @app.route("/config/editor")
    def config_editor() -> str:
        return _render("ConfigEditor")

    @app.route("/fetch-config")
    def fetch_config() -> Response:
        try:
            config = get_full_config()
        except CaddyError as exc:
            return _json({"error": str(exc)}, 500)
        return Response(
            json.dumps(config.to_dict()) + "\n", status=200, mimetype="application/json"
        )

    @app.route("/upload-config", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    def upload_config() -> Response:
        if request.method != "POST":
            return Response(
                '{"error": "Method not allowed. Expected POST"}',
                status=405,
                mimetype="application/json",
            )
        body = request.get_data()
        try:
            save_config(body)
        except CaddyError as exc:
            return _json({"error": f"failed to save config due to error: {exc}"}, 500)
        return _json({"message": "Config saved successfully"})

    return app


def main(argv: list[str] | None = None) -> int:
    """Open the database, run migrations, sync every app and serve."""
    parser = argparse.ArgumentParser(prog="caddyadmin", description="Manage apps behind Caddy.")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--migrations", default="./migrate")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    load_dotenv(".env")

    try:
        db = get_database_handle()
    except DatabaseConfigError as exc:
        raise SystemExit(f"Failed to open database with error: {exc}") from exc

    try:
        try:
            db.execute("select 1")
        except sqlite3.Error as exc:
            raise SystemExit("Failed to connect to database") from exc

        try:
            migrate_up(db, args.migrations)
        except MigrationError as exc:
            raise SystemExit(str(exc)) from exc

        try:
            all_apps = find_all_apps(db)
        except sqlite3.Error:
            all_apps = []
        for record in all_apps:
            _sync_quietly(record.id)

        log.info("Listening on :%d", args.port)
        create_app().run(host=args.host, port=args.port)
    finally:
        close_database()
    return 0