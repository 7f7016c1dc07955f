"""Server configuration, JSON response payloads and output writers."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

_log = logging.getLogger("comandad.sse")

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def _format_time(value: datetime) -> str:
    """Format a timestamp as RFC 3339 with trimmed fractional seconds."""
    if value.tzinfo is None:
        value = value.astimezone()
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset()
    total = int(offset.total_seconds()) if offset is not None else 0
    if total == 0:
        return text + "Z"
    sign = "+" if total > 0 else "-"
    total = abs(total)
    return f"{text}{sign}{total // 3600:02d}:{total % 3600 // 60:02d}"


def _compact_json(value: Any) -> str:
    """Encode compactly with sorted keys and HTML-safe escapes."""
    text = json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    return (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


@dataclass
class CORSConfig:
    """Cross-origin settings applied to every response."""

    allowed_origins: list[str] = field(default_factory=list)
    allowed_methods: list[str] = field(default_factory=list)
    allowed_headers: list[str] = field(default_factory=list)
    max_age: int = 0
    enabled: bool = False


@dataclass
class ServerConfig:
    """Settings for the HTTP server."""

    port: int = 0
    data_dir: str = ""
    bearer_token: str = ""
    enabled: bool = False
    cors: CORSConfig = field(default_factory=CORSConfig)


@dataclass
class FileInfo:
    """Metadata about a file below the data directory."""

    name: str = ""
    path: str = ""
    size: int = 0
    is_dir: bool = False
    created_at: datetime = _ZERO_TIME
    modified_at: datetime = _ZERO_TIME
    methods: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "path": self.path,
            "size": self.size,
            "isDir": self.is_dir,
            "createdAt": _format_time(self.created_at),
            "modifiedAt": _format_time(self.modified_at),
        }
        if self.methods:
            data["methods"] = self.methods
        return data


@dataclass
class FileResponse:
    """Result of a single file operation or upload."""

    success: bool
    message: str = ""
    error: str = ""
    file: FileInfo = field(default_factory=FileInfo)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.message:
            data["message"] = self.message
        if self.error:
            data["error"] = self.error
        data["file"] = self.file.to_dict()
        return data


@dataclass
class ListResponse:
    """Result of listing the data directory."""

    success: bool
    files: Optional[list[FileInfo]] = None
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "files": None if self.files is None else [f.to_dict() for f in self.files],
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class ProcessResponse:
    """Result of running a workflow."""

    success: bool
    message: str = ""
    error: str = ""
    output: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        for key in ("message", "error", "output"):
            value = getattr(self, key)
            if value:
                data[key] = value
        return data


@dataclass
class HealthResponse:
    """Body of the health check endpoint."""

    status: str
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "timestamp": self.timestamp}


class FilteringWriter:
    """Routes debug and verbose log lines to one stream and everything else to another."""

    _PREFIXES = ("[DEBUG]", "[VERBOSE]")

    def __init__(self, output: Any, debug: Any) -> None:
        self.output = output
        self.debug = debug

    def write(self, text: Any) -> Any:
        probe = text.decode("utf-8", errors="replace") if isinstance(text, bytes) else text
        if probe.startswith(self._PREFIXES):
            return self.debug.write(text)
        return self.output.write(text)


class SSEWriter:
    """Formats messages as server-sent events on a binary stream."""

    def __init__(self, stream: Any) -> None:
        self._stream = stream

    def _send(self, kind: str, event: str) -> int:
        encoded = event.encode("utf-8")
        try:
            written = self._stream.write(encoded)
        except OSError as exc:
            _log.debug("[SSE] Error writing %s event: %s", kind, exc)
            raise
        flush = getattr(self._stream, "flush", None)
        if flush is not None:
            flush()
        count = len(encoded) if written is None else written
        _log.debug("[SSE] Successfully sent %s event: bytes=%d", kind, count)
        return count

    def write(self, data: Any) -> int:
        if isinstance(data, (bytes, bytearray)):
            data = bytes(data).decode("utf-8", errors="replace")
        _log.debug("[SSE] Write called with %d bytes", len(data))
        return self.send_data(data)

    def send_data(self, data: str) -> int:
        _log.debug("[SSE] Sending data event, length=%d", len(data))
        return self._send("data", f"event: data\ndata: {data}\n\n")

    def send_progress(self, data: Any) -> int:
        _log.debug("[SSE] Sending progress event")
        payload = data if isinstance(data, str) else _compact_json(data)
        return self._send("progress", f"event: progress\ndata: {payload}\n\n")

    def send_spinner(self, message: str) -> int:
        _log.debug("[SSE] Sending spinner event: %s", message)
        return self._send("spinner", f"event: spinner\ndata: {message}\n\n")

    def send_complete(self, message: str) -> int:
        _log.debug("[SSE] Sending complete event: %s", message)
        return self._send("complete", f"event: complete\ndata: {message}\n\n")

    def send_error(self, error: Any) -> int:
        _log.debug("[SSE] Sending error event: %s", error)
        payload = _compact_json({"success": False, "error": str(error)})
        return self._send("error", f"event: error\ndata: {payload}\n\n")

    def send_heartbeat(self) -> int:
        _log.debug("[SSE] Sending heartbeat event")
        return self._send("heartbeat", ": heartbeat\n\n")