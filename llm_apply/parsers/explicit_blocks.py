"""Extract file blocks declared with an unambiguous wrapper syntax.

Two syntaxes are recognised:

    /* START OF src/app.ts */
    ...
    /* END OF src/app.ts */

    <file path="data/config.json">...</file>

Matched spans are replaced with a placeholder line so the markdown stage
never sees (or re-infers a path for) their content.
"""

from __future__ import annotations

import logging
import re
from enum import Enum

from llm_apply.paths import check_path
from llm_apply.types import BlockSource, FileBlock

logger = logging.getLogger(__name__)


class ExplicitSyntax(str, Enum):
    COMMENT = "comment"
    TAG = "tag"


COMMENT_BLOCK_PATTERN = re.compile(
    r"/\*[ \t]*START OF[ \t]+(?P<path>[^\n]*?)[ \t]*\*/"
    r"(?P<content>.*?)"
    r"/\*[ \t]*END OF[ \t]+(?P=path)[ \t]*\*/",
    re.DOTALL,
)

TAG_BLOCK_PATTERN = re.compile(
    r"<file\b[^>]*?\b(?:path|name|filename)\s*=\s*(?P<quote>[\"'])(?P<path>.*?)(?P=quote)[^>]*>"
    r"(?P<content>.*?)"
    r"</file>",
    re.DOTALL,
)

SYNTAX_PATTERNS: dict[ExplicitSyntax, re.Pattern[str]] = {
    ExplicitSyntax.COMMENT: COMMENT_BLOCK_PATTERN,
    ExplicitSyntax.TAG: TAG_BLOCK_PATTERN,
}

SYNTAX_SOURCES: dict[ExplicitSyntax, BlockSource] = {
    ExplicitSyntax.COMMENT: BlockSource.EXPLICIT_COMMENT,
    ExplicitSyntax.TAG: BlockSource.EXPLICIT_TAG,
}

EXPLICIT_PLACEHOLDER = "\n[explicit file block]\n"


def trim_blank_edges(content: str) -> str:
    """Drop one leading and one trailing blank line, keeping inner layout."""
    first_break = content.find("\n")
    if first_break != -1 and not content[:first_break].strip():
        content = content[first_break + 1 :]
    last_break = content.rfind("\n")
    if last_break != -1 and not content[last_break + 1 :].strip():
        content = content[:last_break]
        if content.endswith("\r"):
            content = content[:-1]
    return content


def extract_explicit(text: str, syntax: ExplicitSyntax) -> tuple[str, list[FileBlock]]:
    """Pull every ``syntax`` block out of ``text``.

    Args:
        text: Input text, possibly already stripped by an earlier syntax.
        syntax: Which wrapper syntax to scan for.

    Returns:
        (remaining_text, entries) where every matched span of
        ``remaining_text`` is replaced by a placeholder and ``entries`` lists
        the valid blocks in document order.
    """
    pattern = SYNTAX_PATTERNS[syntax]
    source = SYNTAX_SOURCES[syntax]
    entries: list[FileBlock] = []

    def _consume(match: re.Match[str]) -> str:
        raw_path = match.group("path")
        content = trim_blank_edges(match.group("content"))

        if not raw_path.strip():
            logger.warning("Skipping %s block without a path.", syntax.value)
            return EXPLICIT_PLACEHOLDER
        if not content.strip():
            logger.warning("Skipping %s block for %r: no content.", syntax.value, raw_path)
            return EXPLICIT_PLACEHOLDER

        check = check_path(raw_path)
        if not check.valid:
            logger.warning(
                "Skipping %s block with unsafe path %r (%s).", syntax.value, raw_path, check.reason
            )
            return EXPLICIT_PLACEHOLDER

        logger.info("Found explicit %s block for %s", syntax.value, check.path)
        entries.append(FileBlock(path=check.path, content=content, source=source))
        return EXPLICIT_PLACEHOLDER

    remaining = pattern.sub(_consume, text)
    return remaining, entries


def is_placeholder_only(text: str) -> bool:
    """True when ``text`` holds nothing but extracted-block placeholders."""
    marker = EXPLICIT_PLACEHOLDER.strip()
    return marker in text and not text.replace(marker, "").strip()


def has_explicit_markers(text: str) -> bool:
    """Cheap check for anything that looks like an explicit block opener."""
    return "<file" in text or "START OF" in text


__all__ = [
    "COMMENT_BLOCK_PATTERN",
    "EXPLICIT_PLACEHOLDER",
    "ExplicitSyntax",
    "TAG_BLOCK_PATTERN",
    "extract_explicit",
    "has_explicit_markers",
    "is_placeholder_only",
    "trim_blank_edges",
]
