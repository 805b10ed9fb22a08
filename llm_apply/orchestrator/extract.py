"""Extraction pass: explicit blocks, then fenced blocks via heuristics and oracle."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from llm_apply.config import ExtractionConfig, Settings
from llm_apply.oracle import NO_PATH, PathOracle, build_context_window, create_oracle
from llm_apply.parsers.explicit_blocks import ExplicitSyntax, extract_explicit, is_placeholder_only
from llm_apply.parsers.heuristics import locate, strip_first_line
from llm_apply.parsers.markdown import DocumentNode, NodeKind, Tokenizer, tokenize
from llm_apply.paths import normalize
from llm_apply.tools.json_comments import clean_json_content
from llm_apply.types import (
    BlockSource,
    ExtractionResult,
    FileBlock,
    PathCandidate,
    UnresolvedBlock,
)

logger = logging.getLogger(__name__)

# Comment blocks first: a <file> tag inside one belongs to its content
EXPLICIT_ORDER = (ExplicitSyntax.COMMENT, ExplicitSyntax.TAG)


@dataclass(frozen=True)
class PendingBlock:
    """A fenced block waiting for its oracle answer."""

    node: DocumentNode
    number: int  # 1-based position among fenced blocks
    candidate: PathCandidate | None
    context: str | None  # set when the oracle must be asked
    rejected: tuple[str, ...] = ()  # candidates that failed validation


def merge_blocks(explicit: Iterable[FileBlock], inferred: Iterable[FileBlock]) -> dict[str, FileBlock]:
    """Combine blocks into one map with explicit > heuristic/oracle precedence.

    Same-tier collisions are last-write-wins; every collision is logged.
    """
    files: dict[str, FileBlock] = {}
    for block in explicit:
        if block.path in files:
            logger.warning(
                "Overwriting file path %s from a previous explicit block.", block.path
            )
        files[block.path] = block

    for block in inferred:
        existing = files.get(block.path)
        if existing is not None and existing.source.is_explicit:
            logger.warning(
                "Skipping code block #%s for %s: path already defined by an explicit %s block.",
                block.block_index,
                block.path,
                existing.source.value,
            )
            continue
        if existing is not None:
            logger.warning(
                "Overwriting file path %s from code block #%s with code block #%s.",
                block.path,
                existing.block_index,
                block.block_index,
            )
        files[block.path] = block
    return files


def _resolved_block(pending: PendingBlock, answer: str | None) -> FileBlock | None:
    node = pending.node
    candidate = pending.candidate
    heuristic_path = normalize(candidate.text) if candidate else None

    if answer is not None and answer != NO_PATH:
        path = normalize(answer)
        if path is not None:
            content = node.text
            if candidate and candidate.strips_first_line and heuristic_path == path:
                content = strip_first_line(content)
            return FileBlock(
                path=path,
                content=content,
                source=BlockSource.ORACLE,
                strategy="oracle",
                language=node.lang,
                block_index=pending.number,
            )

    if heuristic_path is None:
        return None
    content = strip_first_line(node.text) if candidate.strips_first_line else node.text
    return FileBlock(
        path=heuristic_path,
        content=content,
        source=BlockSource.HEURISTIC,
        strategy=candidate.strategy,
        language=node.lang,
        block_index=pending.number,
    )


def _unresolved_reason(pending: PendingBlock, answer: str | None) -> str:
    if answer is not None and answer != NO_PATH:
        return f"rejected oracle path {answer!r}"
    if pending.rejected:
        return "rejected " + "; ".join(pending.rejected)
    if answer == NO_PATH:
        return NO_PATH
    return "no path indicator"


def _clean_contents(files: dict[str, FileBlock], config: ExtractionConfig) -> dict[str, FileBlock]:
    if not config.strip_json_comments:
        return files
    cleaned: dict[str, FileBlock] = {}
    for path, block in files.items():
        content = clean_json_content(path, block.content)
        cleaned[path] = block if content == block.content else block.model_copy(update={"content": content})
    return cleaned


async def _ask(oracle: PathOracle, pending: PendingBlock) -> str | None:
    if pending.context is None:
        return None
    try:
        return await oracle.ask(pending.context)
    except Exception as exc:
        logger.error("Path oracle failed for code block #%d: %s", pending.number, exc)
        return NO_PATH


def _collect_pending(
    text: str,
    nodes: Sequence[DocumentNode],
    config: ExtractionConfig,
) -> list[PendingBlock]:
    pending: list[PendingBlock] = []
    number = 0
    for node in nodes:
        if node.kind is not NodeKind.FENCED_CODE:
            continue
        number += 1
        if not node.text.strip():
            logger.info("Skipping empty code block #%d.", number)
            continue
        if is_placeholder_only(node.text):
            logger.debug("Code block #%d only wrapped an explicit block.", number)
            continue

        rejected: list[str] = []
        candidate = locate(nodes, node.index, rejected=rejected)
        policy = config.oracle_policy
        needs_oracle = policy == "authority" or (policy == "fallback" and candidate is None)
        context = None
        if needs_oracle:
            context = build_context_window(
                text,
                node,
                lines_before=config.context_lines_before,
                code_lines=config.context_code_lines,
            )
        logger.debug(
            "Code block #%d (lang: %s, line %d): heuristic=%s oracle=%s",
            number,
            node.lang or "unknown",
            node.line,
            candidate.strategy if candidate else None,
            needs_oracle,
        )
        pending.append(
            PendingBlock(
                node=node,
                number=number,
                candidate=candidate,
                context=context,
                rejected=tuple(rejected),
            )
        )
    return pending


async def extract_all(
    raw_text: str,
    *,
    oracle: PathOracle | None = None,
    settings: Settings | None = None,
    tokenizer: Tokenizer = tokenize,
) -> ExtractionResult:
    """Extract every file block from ``raw_text``.

    Args:
        raw_text: Full LLM response.
        oracle: Path oracle; built from ``settings`` when omitted.
        settings: Extraction and oracle settings. Defaults to Settings().
        tokenizer: Callable producing DocumentNodes from text.

    Returns:
        ExtractionResult with the merged path -> FileBlock map.
    """
    settings = settings or Settings()
    config = settings.extraction
    result = ExtractionResult()

    remaining = raw_text
    explicit: list[FileBlock] = []
    for syntax in EXPLICIT_ORDER:
        remaining, entries = extract_explicit(remaining, syntax)
        explicit.extend(entries)
    result.explicit_matches = len(explicit)

    try:
        nodes = tokenizer(remaining)
    except Exception:
        logger.exception("Could not tokenize markdown; keeping explicit blocks only.")
        result.files = _clean_contents(merge_blocks(explicit, []), config)
        return result

    result.fenced_blocks = sum(1 for node in nodes if node.kind is NodeKind.FENCED_CODE)
    pending = _collect_pending(remaining, nodes, config)

    owns_oracle = oracle is None
    if oracle is None:
        oracle = create_oracle(settings)
    try:
        if config.parallel:
            answers = await asyncio.gather(*(_ask(oracle, p) for p in pending))
        else:
            answers = [await _ask(oracle, p) for p in pending]
    finally:
        if owns_oracle and hasattr(oracle, "aclose"):
            await oracle.aclose()

    # Single merge step in document order, whatever order answers arrived in
    inferred: list[FileBlock] = []
    for item, answer in zip(pending, answers):
        block = _resolved_block(item, answer)
        if block is None:
            lang = item.node.lang or "unknown"
            logger.warning(
                "Could not determine file path for code block #%d (lang: %s, line %d). Skipping.",
                item.number,
                lang,
                item.node.line,
            )
            result.unresolved.append(
                UnresolvedBlock(
                    block_index=item.number,
                    language=item.node.lang,
                    reason=_unresolved_reason(item, answer),
                    preview=item.node.text[:80],
                )
            )
            continue
        logger.info(
            "Mapped code block #%d to %s (%s)", item.number, block.path, block.strategy
        )
        inferred.append(block)

    result.files = _clean_contents(merge_blocks(explicit, inferred), config)
    logger.info("Finished processing. Found %d files to write.", len(result))
    return result


def extract_all_sync(raw_text: str, **kwargs) -> ExtractionResult:
    """Blocking wrapper around :func:`extract_all`."""
    return asyncio.run(extract_all(raw_text, **kwargs))


__all__ = ["EXPLICIT_ORDER", "PendingBlock", "extract_all", "extract_all_sync", "merge_blocks"]
