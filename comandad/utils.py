"""Small string helpers shared by the server."""

from __future__ import annotations

_MASK = "****"


def mask_token(token: str) -> str:
    """Hide a token for display, keeping only its first and last four characters."""
    if len(token) <= 8:
        return _MASK
    return token[:4] + _MASK + token[-4:]


def truncate_string(s: str, max_len: int) -> str:
    """Shorten ``s`` to ``max_len`` characters, ending it with an ellipsis when cut."""
    if len(s) <= max_len:
        return s
    return s[: max_len - 3] + "..."