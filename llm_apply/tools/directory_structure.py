"""List a project's directories so the path oracle can anchor its guesses."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

IGNORED_DIRS = frozenset({"node_modules", ".git", "dist", "build", "__pycache__", ".venv"})


def get_directory_structure(root: str | Path, *, max_entries: int = 200) -> list[str]:
    """Return sorted relative sub-directory paths under ``root``.

    Dot-directories and IGNORED_DIRS are skipped, paths use forward slashes
    and the root itself is not listed.
    """
    root_path = Path(root).resolve()
    results: list[str] = []

    def _on_error(error: OSError) -> None:
        logger.warning("Could not read directory %s (%s). Skipping.", error.filename, error.strerror)

    for current_root, dirs, _files in os.walk(root_path, onerror=_on_error):
        dirs[:] = sorted(d for d in dirs if d not in IGNORED_DIRS and not d.startswith("."))
        for name in dirs:
            relative = (Path(current_root) / name).relative_to(root_path)
            results.append(relative.as_posix())
            if len(results) >= max_entries:
                return results
    return results


def render_directory_structure(directories: list[str]) -> str:
    if not directories:
        return "(no sub-directories)"
    return "\n".join(f"{d}/" for d in directories)


__all__ = ["IGNORED_DIRS", "get_directory_structure", "render_directory_structure"]
