"""Request handlers for listing, creating, updating, deleting and reading files."""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from werkzeug.wrappers import Request, Response

from comandad.models import FileResponse, ListResponse, ServerConfig
from comandad.paths import DEFAULT_FILENAME, PathError, file_info, list_files, validate_path

_log = logging.getLogger("comandad.files")

_ACCESS_DENIED = "Invalid file path: access denied"


def _encode(data: Any) -> bytes:
    text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    text = (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )
    return (text + "\n").encode("utf-8")


def _json(payload: Any, status: int) -> Response:
    return Response(_encode(payload.to_dict()), status=status, content_type="application/json")


def _failure(status: int, message: str) -> Response:
    return _json(FileResponse(success=False, error=message), status)


def _decode_file_request(request: Request) -> tuple[str, str]:
    """Read ``path`` and ``content`` from a JSON object body; raise ValueError when malformed."""
    text = request.get_data().decode("utf-8")
    data, _ = json.JSONDecoder().raw_decode(text.lstrip())
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    path = data.get("path") or ""
    content = data.get("content") or ""
    if not isinstance(path, str) or not isinstance(content, str):
        raise ValueError("path and content must be strings")
    return path, content


class FileHandlers:
    """Handlers for file operations inside the configured data directory."""

    def __init__(self, config: ServerConfig) -> None:
        self.config = config

    def list_files(self, request: Request) -> Response:
        _log.debug("Listing files in data directory: %s", self.config.data_dir)
        try:
            files = list_files(self.config.data_dir)
        except OSError as exc:
            _log.info("Error listing files: %s", exc)
            return _json(ListResponse(success=False, error=f"Error listing files: {exc}"), 500)
        return _json(ListResponse(success=True, files=files or None), 200)

    def file_operation(self, request: Request) -> Response:
        content = ""
        if request.method == "DELETE":
            file_path = request.args.get("path", "")
            if not file_path:
                _log.info("Empty path parameter")
                return _failure(400, "Path parameter is required")
        else:
            try:
                file_path, content = _decode_file_request(request)
            except ValueError as exc:
                _log.info("Error decoding request: %s", exc)
                return _failure(400, "Invalid request format")
            if not file_path:
                file_path = DEFAULT_FILENAME

        if "../" in file_path or "..\\" in file_path:
            _log.info("Path traversal attempt: %s", file_path)
            return _failure(403, _ACCESS_DENIED)

        clean_path = os.path.normpath(file_path)
        if clean_path == ".":
            clean_path = DEFAULT_FILENAME

        try:
            full_path = validate_path(self.config.data_dir, clean_path)
        except PathError as exc:
            _log.info("Invalid path: %s", exc)
            return _failure(403, _ACCESS_DENIED)

        if request.method == "POST":
            return self._create(full_path, content)
        if request.method == "PUT":
            return self._update(full_path, content)
        if request.method == "DELETE":
            return self._delete(full_path)
        return _failure(405, "Method not allowed")

    def _write_and_describe(self, path: str, content: str, message: str) -> Response:
        try:
            with open(path, "wb") as handle:
                handle.write(content.encode("utf-8"))
        except OSError as exc:
            _log.info("Error writing file: %s", exc)
            return _failure(500, f"Error writing file: {exc}")
        try:
            info = file_info(self.config.data_dir, path)
        except OSError as exc:
            _log.info("Error getting file info: %s", exc)
            return _failure(500, f"Error getting file info: {exc}")
        return _json(FileResponse(success=True, message=message, file=info), 200)

    def _create(self, path: str, content: str) -> Response:
        try:
            os.stat(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            _log.info("Error checking file: %s", exc)
            return _failure(500, f"Error checking file: {exc}")
        else:
            _log.info("File already exists: %s", path)
            return _failure(409, "File already exists")

        try:
            os.makedirs(os.path.dirname(path), mode=0o755, exist_ok=True)
        except OSError as exc:
            _log.info("Error creating directories: %s", exc)
            return _failure(500, f"Error creating directories: {exc}")

        return self._write_and_describe(path, content, "File created successfully")

    def _update(self, path: str, content: str) -> Response:
        if self._missing(path):
            _log.info("File not found: %s", path)
            return _failure(404, "File not found")
        return self._write_and_describe(path, content, "File updated successfully")

    def _delete(self, path: str) -> Response:
        if self._missing(path):
            _log.info("File not found: %s", path)
            return _failure(404, "File not found")
        try:
            os.remove(path)
        except OSError as exc:
            _log.info("Error deleting file: %s", exc)
            return _failure(500, f"Error deleting file: {exc}")
        return _json(FileResponse(success=True, message="File deleted successfully"), 200)

    @staticmethod
    def _missing(path: str) -> bool:
        try:
            os.stat(path)
        except FileNotFoundError:
            return True
        except OSError:
            return False
        return False

    def file_content(self, request: Request) -> Response:
        file_path = request.args.get("path", "")
        if not file_path:
            _log.info("Missing path parameter")
            return _failure(400, "path parameter is required")

        try:
            full_path = validate_path(self.config.data_dir, file_path)
        except PathError as exc:
            _log.info("Invalid path: %s", exc)
            return _failure(403, _ACCESS_DENIED)

        try:
            st = os.stat(full_path)
        except FileNotFoundError:
            _log.info("File not found: %s", full_path)
            return _failure(404, "File not found")
        except OSError as exc:
            _log.info("Error accessing file: %s", exc)
            return _failure(500, f"Error accessing file: {exc}")

        if os.path.isdir(full_path) or (st.st_mode & 0o170000) == 0o040000:
            _log.info("Cannot retrieve content of directory: %s", full_path)
            return _failure(400, "Cannot retrieve content of a directory")

        try:
            with open(full_path, "rb") as handle:
                content = handle.read()
        except OSError as exc:
            _log.info("Error reading file: %s", exc)
            return _failure(500, f"Error reading file: {exc}")

        _log.debug("Successfully read file content, size: %d bytes", len(content))

        content_type = "text/plain"
        if full_path.endswith(".json"):
            content_type = "application/json"
        elif full_path.endswith((".yaml", ".yml")):
            content_type = "application/yaml"
        return Response(content, status=200, content_type=content_type)