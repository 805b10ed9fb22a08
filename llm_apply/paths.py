"""Path normalization and safety checks for extracted file blocks.

Every candidate path, whatever produced it, goes through ``normalize``
before it may become a key of the extraction result.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

MIN_PATH_LENGTH = 3
MAX_PATH_LENGTH = 255

# Wrappers LLMs commonly put around a path
SURROUNDING_QUOTES = "\"'`"

URL_SCHEME_PATTERN = re.compile(r"^(?:https?|ftp)://", re.IGNORECASE)
DRIVE_PREFIX_PATTERN = re.compile(r"^[A-Za-z]:")
FORBIDDEN_CHARS_PATTERN = re.compile(r'[<>:"|?*\x00-\x1f\x7f]')
REPEATED_SLASHES_PATTERN = re.compile(r"/{2,}")

SENTENCE_PUNCTUATION = (".", "!", "?")


@dataclass(frozen=True)
class PathCheck:
    """Outcome of validating a single candidate path."""

    path: str | None
    reason: str

    @property
    def valid(self) -> bool:
        return self.path is not None


def _strip_quotes(value: str) -> str:
    while len(value) >= 2 and value[0] == value[-1] and value[0] in SURROUNDING_QUOTES:
        value = value[1:-1].strip()
    return value


def check_path(candidate: str | None) -> PathCheck:
    """Normalize ``candidate`` and report why it was rejected, if it was.

    Args:
        candidate: Raw path text from any source.

    Returns:
        PathCheck with the normalized path, or ``path=None`` and a reason.
    """
    if candidate is None:
        return PathCheck(None, "empty path")

    value = _strip_quotes(candidate.strip())
    value = value.replace("\\", "/")
    value = REPEATED_SLASHES_PATTERN.sub("/", value)

    if not value:
        return PathCheck(None, "empty path")
    if URL_SCHEME_PATTERN.match(value):
        return PathCheck(None, "URL, not a file path")
    if value.startswith("/") or DRIVE_PREFIX_PATTERN.match(value):
        return PathCheck(None, "absolute path")

    if ".." in value:
        return PathCheck(None, "parent directory traversal")
    if value.endswith("/"):
        return PathCheck(None, "directory, not a file")

    segments = value.split("/")
    # "./src/app.py" -> "src/app.py"
    value = "/".join(segment for segment in segments if segment != ".")

    if len(value) < MIN_PATH_LENGTH:
        return PathCheck(None, "too short")
    if len(value) > MAX_PATH_LENGTH:
        return PathCheck(None, "too long")
    if FORBIDDEN_CHARS_PATTERN.search(value):
        return PathCheck(None, "forbidden character")
    if " " in value and value.endswith(SENTENCE_PUNCTUATION):
        return PathCheck(None, "looks like prose")
    if "/" not in value and "." not in value:
        return PathCheck(None, "no directory separator or extension")

    return PathCheck(value, "ok")


def normalize(candidate: str | None) -> str | None:
    """Return the canonical relative path, or None if the candidate is unsafe."""
    return check_path(candidate).path


def is_within_root(path: str | Path, root: str | Path) -> bool:
    """Check that ``path`` resolved against ``root`` stays inside it."""
    try:
        root_path = Path(root).resolve()
        resolved = (root_path / path).resolve()
    except (OSError, ValueError):
        return False
    return resolved == root_path or root_path in resolved.parents


__all__ = [
    "MAX_PATH_LENGTH",
    "MIN_PATH_LENGTH",
    "PathCheck",
    "check_path",
    "is_within_root",
    "normalize",
]
