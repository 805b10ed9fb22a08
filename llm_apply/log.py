"""Console logging setup and run records for llm-apply.

- Console: stdlib logging rendered by rich on stderr
- Run records: <sessions>/<timestamp>.json, one per CLI invocation
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from llm_apply.types import ExtractionResult
from llm_apply.writer import WriteResult

stderr_console = Console(stderr=True)


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route all llm_apply loggers through a rich handler on stderr."""
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    handler = RichHandler(
        console=stderr_console,
        show_path=False,
        show_time=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger("llm_apply")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def persist_run(
    *,
    result: ExtractionResult,
    writes: Sequence[WriteResult],
    output_dir: Path,
    metadata: dict | None = None,
) -> Path:
    """Write a JSON record of one extraction run.

    Args:
        result: Extraction outcome
        writes: Per-file write results
        output_dir: Sessions directory (created if missing)
        metadata: Extra fields (policy, model, ...)

    Returns:
        Path to the record file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now()

    data = {
        "timestamp": timestamp.strftime("%Y-%m-%d %H:%M:%S"),
        "files": [
            {
                "path": block.path,
                "source": block.source.value,
                "strategy": block.strategy,
                "language": block.language,
                "block_index": block.block_index,
            }
            for block in result.files.values()
        ],
        "unresolved": [
            {
                "block_index": item.block_index,
                "language": item.language,
                "reason": item.reason,
                "preview": item.preview,
            }
            for item in result.unresolved
        ],
        "writes": [
            {
                "path": write.file_path,
                "success": write.success,
                "created": write.created,
                "bytes": write.bytes_written,
                "error": write.error,
            }
            for write in writes
        ],
    }
    if metadata:
        data["metadata"] = metadata

    path = output_dir / f"{timestamp.strftime('%Y%m%d-%H%M%S-%f')}.json"
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path


__all__ = ["configure_logging", "persist_run", "stderr_console"]
