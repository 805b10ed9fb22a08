"""Disk cache for path oracle answers.

Re-running extraction on the same LLM response reuses earlier answers
instead of querying the model again.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any

from diskcache import Cache

CACHE_VERSION = 1
CACHE_DIR_NAME = f"oracle.cache.v{CACHE_VERSION}"
DEFAULT_CACHE_ROOT = Path.home() / ".llm-apply"


class OracleCache:
    """Persistent map of (model, context) -> validated path."""

    def __init__(self, root: Path | str | None = None):
        """Initialize cache under ``root``.

        Args:
            root: Directory to store cache. Defaults to ~/.llm-apply
        """
        directory = Path(root or DEFAULT_CACHE_ROOT) / CACHE_DIR_NAME
        directory.mkdir(parents=True, exist_ok=True)
        self._cache = Cache(str(directory))
        self._root = directory

    @staticmethod
    def key(model: str, context: str) -> str:
        digest = hashlib.sha256(f"{model}\n{context}".encode("utf-8")).hexdigest()
        return f"path:{digest}"

    def get(self, model: str, context: str) -> str | None:
        value = self._cache.get(self.key(model, context))
        return value if isinstance(value, str) else None

    def set(self, model: str, context: str, path: str) -> None:
        self._cache.set(self.key(model, context), path)

    def clear(self) -> None:
        """Clear all cached answers."""
        self._cache.clear()

    def close(self) -> None:
        self._cache.close()

    def __enter__(self) -> OracleCache:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


__all__ = ["CACHE_VERSION", "OracleCache"]
