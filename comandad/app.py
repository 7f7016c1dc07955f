"""WSGI application that serves the data directory, and its command line entry."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
from datetime import datetime
from functools import partial
from typing import Any, Callable, Iterable, Optional, Sequence

from werkzeug.serving import run_simple
from werkzeug.wrappers import Request, Response

from comandad.files import FileHandlers
from comandad.models import CORSConfig, HealthResponse, ServerConfig
from comandad.request_log import RequestLogger
from comandad.transfer import handle_download, handle_upload, handle_yaml_upload
from comandad.utils import mask_token

_log = logging.getLogger("comandad.app")

_DEFAULT_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
_DEFAULT_HEADERS = "Authorization, Content-Type"
_DEFAULT_MAX_AGE = "3600"
_PUBLIC_PATHS = frozenset({"/health"})

Handler = Callable[[Request], Response]


def _default_cors() -> CORSConfig:
    return CORSConfig(
        enabled=True,
        allowed_origins=["*"],
        allowed_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allowed_headers=[
            "Authorization",
            "Content-Type",
            "Cache-Control",
            "Last-Event-ID",
            "X-Accel-Buffering",
            "X-Requested-With",
            "Accept",
        ],
        max_age=3600,
    )


def _json_response(data: dict, status: int) -> Response:
    body = json.dumps(data, separators=(",", ":"), ensure_ascii=False) + "\n"
    return Response(body.encode("utf-8"), status=status, content_type="application/json")


class Server:
    """Routes requests to handlers, adding CORS headers, authentication and request logs."""

    def __init__(self, config: ServerConfig, logger: Optional[logging.Logger] = None) -> None:
        self.config = config
        files = FileHandlers(config)
        self._routes: dict[str, Handler] = {
            "/health": self._health,
            "/list": files.list_files,
            "/files": files.file_operation,
            "/files/content": files.file_content,
            "/files/upload": partial(handle_upload, config),
            "/files/download": partial(handle_download, config),
            "/yaml/upload": partial(handle_yaml_upload, config),
        }
        self._logged = RequestLogger(self.wsgi_app, logger)

    def cors_headers(self, request: Request) -> dict[str, str]:
        """Return the CORS headers configured for responses to ``request``."""
        cors = self.config.cors
        if not cors.enabled:
            _log.debug("[CORS] CORS is disabled")
            return {}
        _log.debug("[CORS] Incoming request origin: %s", request.headers.get("Origin", ""))
        return {
            "Access-Control-Allow-Origin":
                ", ".join(cors.allowed_origins) if cors.allowed_origins else "*",
            "Access-Control-Allow-Methods":
                ", ".join(cors.allowed_methods) if cors.allowed_methods else _DEFAULT_METHODS,
            "Access-Control-Allow-Headers":
                ", ".join(cors.allowed_headers) if cors.allowed_headers else _DEFAULT_HEADERS,
            "Access-Control-Max-Age":
                str(cors.max_age) if cors.max_age > 0 else _DEFAULT_MAX_AGE,
        }

    def _authorized(self, request: Request) -> bool:
        if not self.config.enabled:
            return True
        expected = f"Bearer {self.config.bearer_token}"
        return request.headers.get("Authorization", "") == expected

    @staticmethod
    def _health(request: Request) -> Response:
        timestamp = datetime.now().astimezone().isoformat(timespec="seconds")
        if timestamp.endswith("+00:00"):
            timestamp = timestamp[:-6] + "Z"
        return _json_response(HealthResponse(status="ok", timestamp=timestamp).to_dict(), 200)

    def wsgi_app(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        request = Request(environ)
        handler = self._routes.get(request.path)
        if handler is None:
            response = Response("404 page not found\n", status=404,
                                content_type="text/plain; charset=utf-8")
            return response(environ, start_response)

        cors = self.cors_headers(request)
        if request.method == "OPTIONS":
            response = Response(status=200)
        elif request.path in _PUBLIC_PATHS or self._authorized(request):
            response = handler(request)
        else:
            _log.info("Unauthorized request to %s", request.path)
            response = _json_response({"success": False, "error": "Unauthorized"}, 401)

        for name, value in cors.items():
            if name not in response.headers:
                response.headers[name] = value
        return response(environ, start_response)

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        return self._logged(environ, start_response)


def build_server(config: Optional[ServerConfig]) -> Server:
    """Create the data directory and a server using the default CORS settings."""
    if config is None:
        raise ValueError("server configuration not found")
    try:
        os.makedirs(config.data_dir, mode=0o755, exist_ok=True)
    except OSError as exc:
        raise OSError(f"error creating data directory: {exc}") from exc
    return Server(dataclasses.replace(config, cors=_default_cors()))


def run(config: ServerConfig) -> None:
    """Serve the data directory on the configured port until interrupted."""
    server = build_server(config)
    print(f"Starting server on port {config.port}...")
    print(f"Data directory: {config.data_dir}")
    url = f"http://localhost:{config.port}/list"
    if config.enabled:
        print("Authentication is enabled. Bearer token required.")
        print(f"Example usage: curl -H 'Authorization: Bearer "
              f"{mask_token(config.bearer_token)}' '{url}'")
    else:
        print(f"Example usage: curl '{url}'")
    try:
        run_simple("0.0.0.0", config.port, server, threaded=True)
    except OSError as exc:
        raise OSError(f"server failed to start: {exc}") from exc


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="comandad", description="Serve a data directory over HTTP.")
    parser.add_argument("--port", type=int, default=8080, help="port to listen on")
    parser.add_argument("--data-dir", default="data", help="directory holding served files")
    parser.add_argument("--bearer-token", default=os.environ.get("COMANDAD_BEARER_TOKEN", ""),
                        help="token required in the Authorization header; empty disables auth")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug details")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(message)s")
    config = ServerConfig(
        port=args.port,
        data_dir=args.data_dir,
        bearer_token=args.bearer_token,
        enabled=bool(args.bearer_token),
    )
    try:
        run(config)
    except KeyboardInterrupt:
        return 0
    except (OSError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0