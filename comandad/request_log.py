"""WSGI middleware that logs each request with its status and duration."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional

_MASK = "********"


def mask_authorization(header: str) -> str:
    """Replace the credentials in an Authorization header with a fixed mask."""
    if not header:
        return ""
    if len(header) < 7:
        raise ValueError("authorization header is too short to mask")
    return header.replace(header[7:], _MASK, 1)


def _format_duration(seconds: float) -> str:
    ns = round(seconds * 1e9)
    if ns == 0:
        return "0s"
    if ns < 1_000:
        return f"{ns}ns"
    if ns < 1_000_000:
        unit, divisor = "µs", 1_000
    elif ns < 1_000_000_000:
        unit, divisor = "ms", 1_000_000
    else:
        minutes, rest = divmod(ns, 60_000_000_000)
        hours, minutes = divmod(minutes, 60)
        secs = f"{rest / 1e9:.9f}".rstrip("0").rstrip(".")
        if hours:
            return f"{hours}h{minutes}m{secs}s"
        if minutes:
            return f"{minutes}m{secs}s"
        return f"{secs}s"
    value = f"{ns / divisor:.9f}".rstrip("0").rstrip(".")
    return f"{value}{unit}"


@dataclass
class _Tracker:
    status: int = 200
    written: int = 0


class RequestLogger:
    """Wraps a WSGI application and logs one line per completed request."""

    def __init__(self, app: Callable[..., Iterable[bytes]],
                 logger: Optional[logging.Logger] = None) -> None:
        self.app = app
        self.logger = logger or logging.getLogger("comandad.requests")

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterator[bytes]:
        start = time.perf_counter()
        auth_info = mask_authorization(environ.get("HTTP_AUTHORIZATION", ""))
        method = environ.get("REQUEST_METHOD", "GET")
        path = environ.get("PATH_INFO", "")
        query = environ.get("QUERY_STRING", "")

        log = self.logger
        headers = {key[5:].replace("_", "-").title(): value
                   for key, value in environ.items() if key.startswith("HTTP_")}
        log.debug("Request details:")
        log.debug("- Headers: %s", headers)
        log.debug("- Remote Address: %s", environ.get("REMOTE_ADDR", ""))
        log.debug("- TLS: %s", environ.get("wsgi.url_scheme") == "https")
        log.debug("- Content Length: %s", environ.get("CONTENT_LENGTH") or -1)
        log.debug("- Host: %s", environ.get("HTTP_HOST", ""))
        url = f"{path}?{query}" if query else path
        log.debug("Incoming request: %s %s", method, url)

        tracker = _Tracker()

        def tracking_start_response(status: str, response_headers: list, exc_info: Any = None):
            tracker.status = int(status.split(" ", 1)[0])
            write = start_response(status, response_headers, exc_info)

            def counting_write(data: bytes) -> Any:
                tracker.written += len(data)
                return write(data)

            return counting_write

        body = self.app(environ, tracking_start_response)
        return self._stream(body, tracker, start, method, path, query, auth_info)

    def _stream(self, body: Iterable[bytes], tracker: _Tracker, start: float,
                method: str, path: str, query: str, auth_info: str) -> Iterator[bytes]:
        try:
            for chunk in body:
                tracker.written += len(chunk)
                yield chunk
        finally:
            close = getattr(body, "close", None)
            if close is not None:
                close()
            duration = _format_duration(time.perf_counter() - start)
            log = self.logger
            log.debug("Response: status=%d bytes=%d duration=%s",
                      tracker.status, tracker.written, duration)
            if tracker.status >= 400:
                log.debug("Error response details:")
                log.debug("- Status Code: %d", tracker.status)
                log.debug("- Bytes Written: %d", tracker.written)
                log.debug("- Duration: %s", duration)
                log.debug("- Path: %s", path)
                log.debug("- Query: %s", query)
            log.info("Request: method=%s path=%s query=%s auth=%s status=%d duration=%s",
                     method, path, query, auth_info, tracker.status, duration)