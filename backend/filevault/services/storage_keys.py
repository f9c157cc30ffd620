"""Storage key and display helpers."""
import re
import secrets
import time
from pathlib import PurePosixPath
from typing import Optional

DEFAULT_MIME_TYPE = "application/octet-stream"

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]
_EXTENSION_RE = re.compile(r"\.[A-Za-z0-9]{1,16}")


def build_storage_key(
    user_id: str,
    filename: str,
    now_ms: Optional[int] = None,
    token: Optional[str] = None,
) -> str:
    """Return ``<user_id>/<epoch_ms>-<random>[.ext]``.

    The user prefix scopes the key, the timestamp and the random token keep
    two uploads of the same file (by anyone) from colliding. Only a plain
    alphanumeric extension is carried over from the original name.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    if token is None:
        token = secrets.token_hex(8)
    suffix = PurePosixPath(filename).suffix
    ext = suffix if _EXTENSION_RE.fullmatch(suffix) else ""
    return f"{user_id}/{now_ms}-{token}{ext}"


def format_file_size(size: int) -> str:
    """Human-readable size, e.g. 1536 -> '1.5 KB'."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[unit]}"
