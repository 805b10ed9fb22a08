"""Write extracted file blocks to disk, sandboxed to a root directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from llm_apply.paths import check_path, is_within_root
from llm_apply.types import ExtractionResult, FileBlock

logger = logging.getLogger(__name__)


@dataclass
class WriteResult:
    """Result of writing one file."""

    success: bool
    file_path: str
    source: str
    created: bool = False  # file did not exist before
    bytes_written: int = 0
    error: str | None = None


@dataclass
class FileWriter:
    """Writes whole-file contents under ``root``, never outside it."""

    root: Path
    dry_run: bool = False

    def __post_init__(self):
        self.root = Path(self.root).resolve()

    def write(self, block: FileBlock) -> WriteResult:
        """Create parent directories and write ``block`` with a trailing newline."""
        check = check_path(block.path)
        if not check.valid or not is_within_root(check.path, self.root):
            reason = check.reason if not check.valid else "outside root"
            logger.error("Skipping potentially unsafe path %r (%s).", block.path, reason)
            return WriteResult(
                success=False,
                file_path=block.path,
                source=block.source.value,
                error=f"Unsafe path: {reason}",
            )

        destination = self.root / check.path
        content = block.content if block.content.endswith("\n") else block.content + "\n"
        data = content.encode("utf-8")
        created = not destination.exists()

        if self.dry_run:
            logger.info("[dry-run] Would write %s (%d bytes)", check.path, len(data))
            return WriteResult(
                success=True,
                file_path=check.path,
                source=block.source.value,
                created=created,
                bytes_written=0,
            )

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(data)
        except OSError as e:
            logger.error("Error writing %s: %s", check.path, e)
            return WriteResult(
                success=False,
                file_path=check.path,
                source=block.source.value,
                error=f"Failed to write file: {e}",
            )

        logger.info("Wrote %s", check.path)
        return WriteResult(
            success=True,
            file_path=check.path,
            source=block.source.value,
            created=created,
            bytes_written=len(data),
        )

    def write_all(self, result: ExtractionResult) -> list[WriteResult]:
        return [self.write(block) for block in result.files.values()]


def write_files(
    result: ExtractionResult,
    root: str | Path | None = None,
    *,
    dry_run: bool = False,
) -> list[WriteResult]:
    """Write every block of ``result`` under ``root`` (default: cwd)."""
    writer = FileWriter(root=Path(root) if root else Path.cwd(), dry_run=dry_run)
    return writer.write_all(result)


__all__ = ["FileWriter", "WriteResult", "write_files"]
