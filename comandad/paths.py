"""Path validation and file metadata for the server's data directory."""

from __future__ import annotations

import logging
import os
import stat
from datetime import datetime, timezone
from typing import Iterator

from comandad.models import FileInfo

_log = logging.getLogger("comandad.paths")

DEFAULT_FILENAME = "file.txt"

_TRAVERSAL_PATTERNS = (
    "../", "/..", "../", "..\\", "\\..",
    "/../", "\\..\\", "/../../", "\\..\\..\\",
)


class PathError(ValueError):
    """Raised when a requested path is not allowed inside the data directory."""


def validate_path(data_dir: str, path: str) -> str:
    """Return the cleaned path of ``path`` inside ``data_dir``, or raise PathError."""
    if path in ("", "."):
        path = DEFAULT_FILENAME

    if os.path.isabs(path):
        raise PathError("absolute paths are not allowed")

    normalized = path.replace(os.sep, "/")
    if any(pattern in normalized for pattern in _TRAVERSAL_PATTERNS):
        raise PathError("access denied")

    try:
        abs_data_dir = os.path.abspath(data_dir)
    except (OSError, ValueError) as exc:
        _log.debug("Failed to get absolute data directory path: %s", exc)
        raise PathError("invalid data directory path") from exc
    _log.debug("Data directory absolute path: %s", abs_data_dir)

    full_path = os.path.normpath(os.path.join(data_dir, path))
    _log.debug("Full path after joining with data directory: %s", full_path)

    try:
        abs_path = os.path.abspath(full_path)
    except (OSError, ValueError) as exc:
        _log.debug("Failed to get absolute path for target file: %s", exc)
        raise PathError("invalid path") from exc
    _log.debug("Target file absolute path: %s", abs_path)

    if not abs_path.startswith(abs_data_dir + os.sep):
        _log.debug("Path attempts to escape data directory: %s", abs_path)
        raise PathError("path attempts to escape data directory")

    if abs_path == abs_data_dir:
        _log.debug("Path points to data directory itself")
        raise PathError("invalid path")

    try:
        rel_path = os.path.relpath(full_path, data_dir)
    except ValueError as exc:
        _log.debug("Failed to get relative path: %s", exc)
        raise PathError("invalid path") from exc
    _log.debug("Relative path: %s", rel_path)

    for component in rel_path.replace(os.sep, "/").split("/"):
        if component in ("..", ".") or ".." in component:
            _log.debug("Invalid path component detected: %s", component)
            raise PathError("path attempts to escape data directory")

    _log.debug("Path validation successful: %s", full_path)
    return full_path


def _info_from_stat(data_dir: str, path: str, st: os.stat_result) -> FileInfo:
    name = os.path.basename(path)
    modified = datetime.fromtimestamp(st.st_mtime, tz=timezone.utc).astimezone()
    return FileInfo(
        name=name,
        path=os.path.relpath(path, data_dir),
        size=st.st_size,
        is_dir=stat.S_ISDIR(st.st_mode),
        created_at=modified,
        modified_at=modified,
        methods="POST" if name.endswith(".yaml") else "",
    )


def file_info(data_dir: str, path: str) -> FileInfo:
    """Describe the file at ``path``, with its path given relative to ``data_dir``."""
    return _info_from_stat(data_dir, path, os.stat(path))


def _walk(root: str, directory: str) -> Iterator[FileInfo]:
    for name in sorted(os.listdir(directory)):
        full = os.path.join(directory, name)
        st = os.lstat(full)
        yield _info_from_stat(root, full, st)
        if stat.S_ISDIR(st.st_mode):
            yield from _walk(root, full)


def list_files(data_dir: str) -> list[FileInfo]:
    """List every entry below ``data_dir`` in lexical walk order, the directory itself excluded."""
    root = os.lstat(data_dir)
    if not stat.S_ISDIR(root.st_mode):
        return []
    return list(_walk(data_dir, data_dir))