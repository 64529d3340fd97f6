#!/usr/bin/env python3
"""
======================================================================
                Spotify Status on Slack - Config UI Server
======================================================================

  Project: Spotify Status on Slack
  Author: J. Apps (JohnV2002 / Sodakiller1)
  Version: 1.0.0
  Description: Small local FastAPI app behind the config page.

----------------------------------------------------------------------
 Endpoints:
 ---------------------------------------------------------------------
  GET    /api/config      full config (defaults applied) + file meta
  PUT    /api/config      replace the whole config (validated)
  GET    /api/ui-config   the fields the config page edits
  PUT    /api/ui-config   merge those fields into the existing file
  GET    /api/logs        tail of stdout/stderr log (?stream=&limit=)
  DELETE /api/logs        clear a log file (?stream=)
  GET    /*               static UI build (CONFIG_UI_PUBLIC_DIR)

 Environment (.env is loaded):
  CONFIG_UI_PASSWORD   required; Basic Auth password, "" disables auth
  CONFIG_UI_PORT       default 3999
  CONFIG_UI_HOST       default 127.0.0.1
  CONFIG_UI_PUBLIC_DIR default ./dist
  CONFIG_PATH          config file override

----------------------------------------------------------------------

  Copyright (c) 2026 J. Apps
  Licensed under the MIT License.

======================================================================
"""

import base64
import binascii
import json
import os
import secrets
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional, Tuple

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from config_schema import (
    AppConfig,
    ConfigError,
    RuntimeConfig,
    apply_defaults,
    format_validation_error,
    parse_config,
    parse_ui_config,
    select_ui_config,
)
from config_store import read_config_file, resolve_config_path, write_config_file
from log_files import clear_log_file, read_log_tail, resolve_log_path
from status_log import log, setup_logging

DEFAULT_PORT = 3999
DEFAULT_HOST = "127.0.0.1"
AUTH_REALM = "Spotify Status Config"
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@dataclass
class UiSettings:
    workdir: Path
    config_path: Path
    public_dir: Path
    password: str = ""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @property
    def auth_required(self) -> bool:
        return len(self.password) > 0

    @classmethod
    def from_env(cls, workdir: Optional[Path] = None) -> "UiSettings":
        """
        Build settings from the environment.

        Raises:
            ConfigError: when CONFIG_UI_PASSWORD is not defined at all
        """
        if "CONFIG_UI_PASSWORD" not in os.environ:
            raise ConfigError(
                "Missing CONFIG_UI_PASSWORD. Set it to enable Basic Auth for the Config UI, "
                "or set it to an empty string to disable auth."
            )
        base = Path(workdir or os.getcwd()).resolve()
        return cls(
            workdir=base,
            config_path=resolve_config_path(base, os.getenv("CONFIG_PATH")),
            public_dir=(base / os.getenv("CONFIG_UI_PUBLIC_DIR", "dist")).resolve(),
            password=os.environ["CONFIG_UI_PASSWORD"],
            host=os.getenv("CONFIG_UI_HOST", DEFAULT_HOST),
            port=int(os.getenv("CONFIG_UI_PORT", str(DEFAULT_PORT))),
        )


class LogsQuery(BaseModel):
    model_config = ConfigDict(extra="forbid")
    stream: Literal["stdout", "stderr"] = "stdout"
    limit: int = Field(default=2500, ge=100, le=10000)


class LogsStreamQuery(BaseModel):
    model_config = ConfigDict(extra="forbid")
    stream: Literal["stdout", "stderr"] = "stdout"


class PrettyJSONResponse(JSONResponse):
    def render(self, content: Any) -> bytes:
        return json.dumps(content, ensure_ascii=False, indent=2).encode("utf-8")


def json_response(body: Any, status: int = 200) -> PrettyJSONResponse:
    return PrettyJSONResponse(body, status_code=status, headers={"Cache-Control": "no-store"})


def error_response(error: str, status: int) -> PrettyJSONResponse:
    return json_response({"ok": False, "error": error}, status)


def unauthorized_response() -> Response:
    return PlainTextResponse(
        "Unauthorized", status_code=401, headers={"WWW-Authenticate": f'Basic realm="{AUTH_REALM}"'}
    )


def is_authorized(authorization: str, password: str) -> bool:
    """Check the password part of a Basic Auth header in constant time. The user name is ignored."""
    if not authorization.startswith("Basic "):
        return False
    try:
        decoded = base64.b64decode(authorization[6:], validate=False).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        return False
    _, sep, provided = decoded.partition(":")
    if not sep:
        provided = ""
    return secrets.compare_digest(provided.encode("utf-8"), password.encode("utf-8"))


def config_dump(config: RuntimeConfig) -> dict:
    return config.model_dump(by_alias=True, exclude_none=True)


def create_app(settings: UiSettings) -> FastAPI:
    app = FastAPI(title="Spotify Status Config", docs_url=None, redoc_url=None, openapi_url=None)

    def meta(exists: bool) -> dict:
        return {"path": str(settings.config_path), "exists": exists}

    def load_config_for_ui() -> Tuple[RuntimeConfig, bool, Optional[str]]:
        if not settings.config_path.exists():
            return apply_defaults(), False, None
        try:
            return apply_defaults(read_config_file(settings.config_path)), True, None
        except ConfigError as e:
            return apply_defaults(), True, str(e)

    def load_config_for_update() -> Tuple[Optional[AppConfig], bool, Optional[str]]:
        if not settings.config_path.exists():
            return None, False, None
        try:
            return read_config_file(settings.config_path), True, None
        except ConfigError as e:
            return None, True, str(e)

    def log_path_for(config: RuntimeConfig, stream: str) -> Path:
        configured = config.stdout_log_path if stream == "stdout" else config.stderr_log_path
        return resolve_log_path(settings.workdir, configured)

    @app.middleware("http")
    async def basic_auth(request: Request, call_next):
        if settings.auth_required and not is_authorized(request.headers.get("authorization", ""), settings.password):
            return unauthorized_response()
        return await call_next(request)

    @app.get("/api/config")
    def get_config():
        config, exists, error = load_config_for_ui()
        if error:
            return error_response(error, 500)
        return json_response({"config": config_dump(config), "meta": meta(exists)})

    @app.get("/api/ui-config")
    def get_ui_config():
        config, exists, error = load_config_for_ui()
        if error:
            return error_response(error, 500)
        return json_response({"config": select_ui_config(config).model_dump(by_alias=True), "meta": meta(exists)})

    @app.put("/api/config")
    async def put_config(request: Request):
        try:
            config = parse_config(await request.json())
            write_config_file(settings.config_path, config)
        except (ValueError, OSError) as e:
            return error_response(str(e), 400)
        log("INFO", "Config saved from UI", {"path": str(settings.config_path)})
        return json_response({"ok": True, "config": config_dump(apply_defaults(config)), "meta": meta(True)})

    @app.put("/api/ui-config")
    async def put_ui_config(request: Request):
        try:
            ui_config = parse_ui_config(await request.json())
        except ValueError as e:
            return error_response(str(e), 400)

        existing, exists, error = load_config_for_update()
        if error:
            return error_response(error, 400)
        if not exists or existing is None:
            return error_response(
                f"Config file not found at {settings.config_path}. Create it first with a Slack token.", 400
            )

        try:
            updated = parse_config({**existing.to_json_dict(), **ui_config.model_dump(by_alias=True)})
            write_config_file(settings.config_path, updated)
        except (ValueError, OSError) as e:
            return error_response(str(e), 400)
        log("INFO", "UI config saved", {"path": str(settings.config_path)})
        return json_response({
            "ok": True,
            "config": select_ui_config(apply_defaults(updated)).model_dump(by_alias=True),
            "meta": meta(True),
        })

    @app.get("/api/logs")
    def get_logs(request: Request):
        try:
            query = LogsQuery.model_validate(dict(request.query_params))
        except ValidationError as e:
            return error_response(format_validation_error(e, root="query"), 400)

        config, _, config_error = load_config_for_ui()
        path = log_path_for(config, query.stream)
        try:
            tail = read_log_tail(path, query.limit)
        except OSError as e:
            return error_response(str(e), 500)

        body = {
            "ok": True,
            "stream": query.stream,
            "path": str(path),
            "lines": tail.lines,
            "totalLines": tail.total_lines,
            "truncated": tail.truncated,
            "missing": tail.missing,
        }
        if config_error:
            body["configError"] = config_error
        return json_response(body)

    @app.delete("/api/logs")
    def delete_logs(request: Request):
        try:
            query = LogsStreamQuery.model_validate(dict(request.query_params))
        except ValidationError as e:
            return error_response(format_validation_error(e, root="query"), 400)

        config, _, config_error = load_config_for_ui()
        if config_error:
            return error_response(f"Config error: {config_error}", 400)
        path = log_path_for(config, query.stream)
        try:
            existed = clear_log_file(path)
        except OSError as e:
            return error_response(str(e), 500)
        log("INFO", "Log file cleared from UI", {"stream": query.stream, "path": str(path)})
        return json_response({"ok": True, "stream": query.stream, "path": str(path), "missing": not existed})

    @app.post("/api/config")
    def post_config():
        return error_response("Use PUT /api/config to update the config.", 405)

    @app.api_route("/api/{rest:path}", methods=ALL_METHODS)
    def api_not_found(rest: str):
        return PlainTextResponse("Not Found", status_code=404)

    @app.api_route("/{rest:path}", methods=ALL_METHODS)
    def static_files(request: Request, rest: str):
        if request.method not in ("GET", "HEAD"):
            return PlainTextResponse("Method Not Allowed", status_code=405)
        return serve_static(settings.public_dir, request.url.path)

    return app


def serve_static(public_dir: Path, url_path: str) -> Response:
    relative = "index.html" if url_path == "/" else url_path.lstrip("/")
    target = (public_dir / relative).resolve()
    if target != public_dir and public_dir not in target.parents:
        return PlainTextResponse("Not Found", status_code=404)
    if target.is_file():
        return FileResponse(target)

    index = public_dir / "index.html"
    if index.is_file():
        return FileResponse(index)
    return PlainTextResponse("UI build not found. Build the config page into the public directory first.", status_code=500)


def main() -> int:
    load_dotenv()
    setup_logging()
    try:
        settings = UiSettings.from_env()
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 1

    app = create_app(settings)
    log("INFO", f"Config UI listening on http://localhost:{settings.port}", {
        "configPath": str(settings.config_path),
        "publicDir": str(settings.public_dir),
        "auth": settings.auth_required,
    })
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="warning")
    return 0


if __name__ == "__main__":
    sys.exit(main())
