"""Virtual path helpers.

A virtual path is the ``/``-joined sequence of ancestor folder names of a
record, without leading or trailing separators.  The root is ``""``.
A record's *full path* is its virtual path joined with its own name.
"""

from __future__ import annotations

import mimetypes
from collections.abc import Iterable

SEPARATOR = "/"
ROOT = ""

MAX_NAME_LENGTH = 255


def parse_path(path: str | None) -> list[str]:
    """Split *path* into segments, dropping empty ones.

    Examples:
        parse_path("") -> []
        parse_path("a//b/") -> ["a", "b"]
    """
    if not path:
        return []
    return [part for part in path.split(SEPARATOR) if part.strip()]


def build_path(segments: Iterable[str]) -> str:
    """Join non-empty *segments*; no segments yields the root path."""
    return SEPARATOR.join(s for s in segments if s and s.strip())


def normalize_path(path: str | None) -> str:
    """Canonical form of *path* (``"/a//b/"`` -> ``"a/b"``)."""
    return build_path(parse_path(path))


def join_path(path: str, name: str) -> str:
    """Full path of a record named *name* inside *path*."""
    return build_path([*parse_path(path), name])


def parent_of(path: str) -> str:
    """Drop the last segment.  The parent of root is root."""
    return build_path(parse_path(path)[:-1])


def is_descendant_of(candidate: str, ancestor: str) -> bool:
    """True iff *candidate* equals *ancestor* or lies beneath it.

    Every path is a descendant of the root.
    """
    if not ancestor:
        return True
    return candidate == ancestor or candidate.startswith(ancestor + SEPARATOR)


def replace_prefix(path: str, old_prefix: str, new_prefix: str) -> str:
    """Swap the leading *old_prefix* of *path* for *new_prefix*.

    *path* must be a descendant of *old_prefix*.
    """
    if path == old_prefix:
        return new_prefix
    rest = path[len(old_prefix) + 1:]
    return join_path(new_prefix, rest)


def validate_name(name: str) -> tuple[bool, str]:
    """Validate a leaf name for a file or folder.

    Returns:
        (is_valid, error_message) - error_message is empty if valid
    """
    if not name or not name.strip():
        return False, "Name must not be empty"

    if "\x00" in name:
        return False, "Name contains null bytes"

    for ch in name:
        code = ord(ch)
        if 0x01 <= code <= 0x1F:
            return False, f"Name contains control character: 0x{code:02x}"

    if SEPARATOR in name:
        return False, f"Name must not contain '{SEPARATOR}'"

    if name in (".", ".."):
        return False, f"Reserved name: {name}"

    if len(name) > MAX_NAME_LENGTH:
        return False, f"Name too long (max {MAX_NAME_LENGTH} characters)"

    return True, ""


def format_size(size_bytes: int | None) -> str:
    """Human readable size: ``1536 -> "1.5 KB"``."""
    if not size_bytes:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size_bytes)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"


def guess_content_type(filename: str) -> str:
    """Guess the MIME type of a file based on its name."""
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or "application/octet-stream"
