"""Handlers for uploading and downloading files in the data directory."""

from __future__ import annotations

import json
import logging
import os
import shutil
import stat
import time

from werkzeug.wrappers import Request, Response

from comandad.models import FileResponse, ServerConfig
from comandad.paths import PathError, file_info, validate_path

_log = logging.getLogger("comandad.transfer")


def _encode(data: dict) -> bytes:
    text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    text = (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )
    return (text + "\n").encode("utf-8")


def _respond(payload: FileResponse, status: int) -> Response:
    return Response(_encode(payload.to_dict()), status=status, content_type="application/json")


def _failure(status: int, message: str) -> Response:
    return _respond(FileResponse(success=False, error=message), status)


def _describe(config: ServerConfig, path: str, message: str) -> Response:
    try:
        info = file_info(config.data_dir, path)
    except OSError as exc:
        _log.info("Error getting file info: %s", exc)
        return _failure(500, f"Error getting file info: {exc}")
    return _respond(FileResponse(success=True, message=message, file=info), 200)


def _make_parent(path: str) -> None:
    os.makedirs(os.path.dirname(path), mode=0o755, exist_ok=True)


def handle_upload(config: ServerConfig, request: Request) -> Response:
    """Store the multipart ``file`` field at the ``path`` field or under its own name."""
    if request.method != "POST":
        return _failure(405, "Method not allowed")

    if request.mimetype != "multipart/form-data":
        _log.info("Error parsing multipart form: content type %r", request.mimetype)
        return _failure(400, "Error parsing form data")

    upload = request.files.get("file")
    if upload is None:
        _log.info("Error getting file from form: no file field")
        return _failure(400, "No file provided")

    file_path = request.form.get("path", "")
    if not file_path:
        file_path = os.path.basename(upload.filename or "")

    try:
        full_path = validate_path(config.data_dir, file_path)
    except PathError as exc:
        _log.info("Invalid path: %s", exc)
        return _failure(403, f"Invalid file path: {exc}")

    try:
        _make_parent(full_path)
    except OSError as exc:
        _log.info("Error creating directories: %s", exc)
        return _failure(500, f"Error creating directories: {exc}")

    try:
        destination = open(full_path, "wb")
    except OSError as exc:
        _log.info("Error creating file: %s", exc)
        return _failure(500, f"Error creating file: {exc}")

    with destination:
        try:
            shutil.copyfileobj(upload.stream, destination)
        except OSError as exc:
            _log.info("Error copying file: %s", exc)
            return _failure(500, f"Error saving file: {exc}")

    return _describe(config, full_path, "File uploaded successfully")


def handle_download(config: ServerConfig, request: Request) -> Response:
    """Send the file named by the ``path`` query parameter as an attachment."""
    if request.method != "GET":
        return _failure(405, "Method not allowed")

    file_path = request.args.get("path", "")
    if not file_path:
        _log.info("Missing path parameter")
        return _failure(400, "path parameter is required")

    try:
        full_path = validate_path(config.data_dir, file_path)
    except PathError as exc:
        _log.info("Invalid path: %s", exc)
        return _failure(403, f"Invalid file path: {exc}")

    try:
        st = os.stat(full_path)
    except FileNotFoundError:
        _log.info("File not found: %s", full_path)
        return _failure(404, "File not found")
    except OSError as exc:
        _log.info("Error accessing file: %s", exc)
        return _failure(500, f"Error accessing file: {exc}")

    if stat.S_ISDIR(st.st_mode):
        _log.info("Cannot download directory: %s", full_path)
        return _failure(400, "Cannot download a directory")

    try:
        handle = open(full_path, "rb")
    except OSError as exc:
        _log.info("Error opening file: %s", exc)
        return _failure(500, f"Error opening file: {exc}")

    with handle:
        try:
            content = handle.read()
        except OSError as exc:
            _log.info("Error copying file: %s", exc)
            return _failure(500, f"Error copying file: {exc}")

    disposition = f"attachment; filename={os.path.basename(full_path)}"
    return Response(
        content,
        status=200,
        content_type="application/octet-stream",
        headers={"Content-Disposition": disposition},
    )


def _decode_yaml_request(request: Request) -> str:
    """Return the ``content`` of a JSON YAML request; raise ValueError when malformed."""
    text = request.get_data().decode("utf-8")
    data, _ = json.JSONDecoder().raw_decode(text.lstrip())
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    content = data.get("content")
    if content is None:
        content = ""
    if not isinstance(content, str):
        raise ValueError("content must be a string")
    if not isinstance(data.get("input") or "", str):
        raise ValueError("input must be a string")
    streaming = data.get("streaming")
    if streaming is not None and not isinstance(streaming, bool):
        raise ValueError("streaming must be a boolean")
    return content


def handle_yaml_upload(config: ServerConfig, request: Request) -> Response:
    """Save YAML content from a JSON body under a freshly generated file name."""
    if request.method != "POST":
        return _failure(405, "Method not allowed")

    try:
        content = _decode_yaml_request(request)
    except ValueError as exc:
        _log.info("Error decoding request: %s", exc)
        return _failure(400, "Invalid request format")

    filename = f"upload_{time.time_ns()}.yaml"
    try:
        full_path = validate_path(config.data_dir, filename)
    except PathError as exc:
        _log.info("Invalid path: %s", exc)
        return _failure(403, f"Invalid file path: {exc}")

    try:
        _make_parent(full_path)
    except OSError as exc:
        _log.info("Error creating directories: %s", exc)
        return _failure(500, f"Error creating directories: {exc}")

    try:
        with open(full_path, "wb") as handle:
            handle.write(content.encode("utf-8"))
    except OSError as exc:
        _log.info("Error writing file: %s", exc)
        return _failure(500, f"Error writing file: {exc}")

    return _describe(config, full_path, "YAML file uploaded successfully")