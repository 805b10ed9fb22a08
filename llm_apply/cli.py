"""apply-llm-changes: write the files described in an LLM response read from stdin.

Usage:
    pbpaste | apply-llm-changes                 # extract and write
    apply-llm-changes --dry-run < response.md   # show what would be written
    apply-llm-changes --policy off < resp.md    # heuristics only, no oracle calls
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from dotenv import find_dotenv, load_dotenv
from rich.console import Console
from rich.table import Table

from llm_apply.config import Settings, load_settings
from llm_apply.exceptions import ConfigError, InputReadError
from llm_apply.log import configure_logging, persist_run
from llm_apply.oracle import PathOracle, create_oracle
from llm_apply.orchestrator import extract_all
from llm_apply.parsers.explicit_blocks import has_explicit_markers
from llm_apply.types import ExtractionResult
from llm_apply.writer import FileWriter, WriteResult

logger = logging.getLogger(__name__)
console = Console()


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="apply-llm-changes",
        description="Apply file changes described in LLM output read from stdin",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to settings.yaml override")
    parser.add_argument(
        "--policy",
        choices=["fallback", "authority", "off"],
        default=None,
        help="Path oracle policy: fallback (default), authority, or off",
    )
    parser.add_argument(
        "--parallel",
        action="store_true",
        help="Issue path oracle calls concurrently",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=Path.cwd(),
        help="Directory files are written under (default: cwd)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Extract but do not write")
    parser.add_argument(
        "--sessions",
        type=Path,
        default=None,
        help="Directory to store a JSON record of this run",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit JSON output for downstream tooling",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def read_input(stream: TextIO | None = None) -> str:
    """Read the whole input stream as UTF-8."""
    stream = stream or sys.stdin
    try:
        buffer = getattr(stream, "buffer", None)
        if buffer is not None:
            return buffer.read().decode("utf-8")
        return stream.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise InputReadError(f"Failed to read input: {exc}") from exc


def has_block_markers(text: str) -> bool:
    """True when the input visibly tries to describe files."""
    return "```" in text or "~~~" in text or has_explicit_markers(text)


def exit_code(raw: str, result: ExtractionResult, writes: Sequence[WriteResult]) -> int:
    if any(not write.success for write in writes):
        return 1
    if len(result) == 0 and has_block_markers(raw):
        return 1
    return 0


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    updates: dict = {}
    if args.policy:
        updates["oracle_policy"] = args.policy
    if args.parallel:
        updates["parallel"] = True
    if updates:
        settings.extraction = settings.extraction.model_copy(update=updates)
    return settings


async def _extract(raw: str, oracle: PathOracle, settings: Settings) -> ExtractionResult:
    try:
        return await extract_all(raw, oracle=oracle, settings=settings)
    finally:
        if hasattr(oracle, "aclose"):
            await oracle.aclose()


def render_summary(result: ExtractionResult, writes: Sequence[WriteResult], dry_run: bool) -> None:
    """Pretty-print what was written."""
    table = Table(title="Dry run" if dry_run else "Files written")
    table.add_column("Path")
    table.add_column("Source")
    table.add_column("Status")
    for write in writes:
        block = result.get(write.file_path)
        source = (block.strategy or block.source.value) if block else write.source
        if not write.success:
            status = f"[red]{write.error}[/red]"
        elif dry_run:
            status = "[dim]skipped[/dim]"
        else:
            status = "[green]created[/green]" if write.created else "[yellow]updated[/yellow]"
        table.add_row(write.file_path, source, status)
    console.print(table)

    written = sum(1 for write in writes if write.success)
    failed = len(writes) - written
    console.print(
        f"[dim]Wrote {0 if dry_run else written} | Errors {failed} | "
        f"Unresolved blocks {len(result.unresolved)}[/dim]"
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.json)
    load_dotenv(find_dotenv(usecwd=True))

    try:
        settings = apply_overrides(load_settings(args.config), args)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 1

    logger.info("Waiting for LLM output via stdin...")
    try:
        raw = read_input()
    except InputReadError as exc:
        logger.error("%s", exc)
        return 1
    if not raw.strip():
        logger.warning("No input received from stdin.")
        return 0

    oracle = create_oracle(settings, root=args.root)
    result = asyncio.run(_extract(raw, oracle, settings))

    writes: list[WriteResult] = []
    if len(result) == 0:
        logger.warning("No valid code blocks with file paths found.")
    else:
        writer = FileWriter(root=args.root, dry_run=args.dry_run)
        writes = writer.write_all(result)

    code = exit_code(raw, result, writes)
    record_path = None
    if args.sessions:
        record_path = persist_run(
            result=result,
            writes=writes,
            output_dir=args.sessions,
            metadata={
                "policy": settings.extraction.oracle_policy,
                "parallel": settings.extraction.parallel,
                "model": settings.oracle.model,
                "root": str(args.root),
                "dry_run": args.dry_run,
                "exit_code": code,
            },
        )

    if args.json:
        payload = {
            "files": {path: block.source.value for path, block in result.files.items()},
            "written": [w.file_path for w in writes if w.success and not args.dry_run],
            "errors": {w.file_path: w.error for w in writes if not w.success},
            "unresolved": [item.block_index for item in result.unresolved],
            "dry_run": args.dry_run,
            "exit_code": code,
        }
        if record_path:
            payload["record_path"] = str(record_path)
        print(json.dumps(payload, indent=2))
    elif writes:
        render_summary(result, writes, args.dry_run)
        if record_path:
            console.print(f"\nRun record saved to: {record_path}")

    return code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
