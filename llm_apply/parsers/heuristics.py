"""Infer a file path for a fenced code block from the surrounding document.

Strategies run in order of descending confidence and the first one whose
candidate passes path validation wins.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from typing import Optional

from llm_apply.parsers.markdown import DocumentNode, NodeKind
from llm_apply.paths import check_path
from llm_apply.types import PathCandidate

logger = logging.getLogger(__name__)

LIST_ITEM_LOOKBACK = 5

PATH_SHAPE = re.compile(r"^[\w@~+\-./\\]+$")
EXTENSION = re.compile(r"\.[\w+-]*[A-Za-z][\w+-]*$")

SINGLE_LINE_FRONT_MATTER = re.compile(r"^---[ \t]+path:[ \t]*(?P<path>\S+?)[ \t]+---$", re.IGNORECASE)
FRONT_MATTER_PATH = re.compile(r"^[ \t]*path:[ \t]*(?P<path>\S.*?)[ \t]*$", re.IGNORECASE | re.MULTILINE)

HEADING_PATH = re.compile(r"^(?:File|Path)\b:?[ \t]*(?P<path>.+?)[ \t]*$", re.IGNORECASE)
MARKER_PATH = re.compile(
    r"^(?:\*\*|__)?(?:File|Path)(?:name)?[ \t]*:(?:\*\*|__)?[ \t]*(?P<path>\S+)",
    re.IGNORECASE,
)
INLINE_CODE_PATH = re.compile(r"`(?P<path>[^`\s]+\.[\w+-]+)`")

HEADER_COMMENT_LINE = re.compile(r"^[ \t]*\*[ \t]+(?P<path>\S+)[ \t]*$")
BOLD_CODE_PATH = re.compile(r"\*\*[ \t]*`(?P<path>[^`]+)`[ \t]*\*\*|`\*\*(?P<inner>[^*`]+)\*\*`")

_FILE_PREFIX = r"(?:File:[ \t]*)?"
FIRST_LINE_COMMENT_PATTERNS = [
    re.compile(rf"^[ \t]*//+[ \t]*{_FILE_PREFIX}(?P<path>\S+)[ \t]*$", re.IGNORECASE),
    re.compile(rf"^[ \t]*#(?!!)[ \t]*{_FILE_PREFIX}(?P<path>\S+)[ \t]*$", re.IGNORECASE),
    re.compile(rf"^[ \t]*--[ \t]*{_FILE_PREFIX}(?P<path>\S+)[ \t]*$", re.IGNORECASE),
    re.compile(rf"^[ \t]*/\*+[ \t]*{_FILE_PREFIX}(?P<path>\S+?)[ \t]*\*/[ \t]*$", re.IGNORECASE),
    re.compile(rf"^[ \t]*<!--[ \t]*{_FILE_PREFIX}(?P<path>\S+?)[ \t]*-->[ \t]*$", re.IGNORECASE),
]

_WRAPPERS = ("**", "__", "`", '"', "'")

Strategy = Callable[[Sequence[DocumentNode], int], Optional[PathCandidate]]


def clean_token(value: str) -> str:
    """Strip markdown emphasis, code ticks, quotes and a trailing colon."""
    value = value.strip().rstrip(":").strip()
    changed = True
    while changed and value:
        changed = False
        for wrapper in _WRAPPERS:
            if len(value) > 2 * len(wrapper) and value.startswith(wrapper) and value.endswith(wrapper):
                value = value[len(wrapper) : -len(wrapper)].strip().rstrip(":").strip()
                changed = True
    return value


def looks_like_path(token: str) -> bool:
    """True for single tokens with a directory separator or a real extension."""
    if not token or not PATH_SHAPE.match(token):
        return False
    return "/" in token or "\\" in token or bool(EXTENSION.search(token))


def _previous_node(nodes: Sequence[DocumentNode], code_index: int) -> DocumentNode | None:
    for index in range(code_index - 1, -1, -1):
        if not nodes[index].is_blank:
            return nodes[index]
    return None


def from_front_matter(nodes: Sequence[DocumentNode], code_index: int) -> PathCandidate | None:
    """``--- path: x ---`` block right before the fence."""
    previous = _previous_node(nodes, code_index)
    if previous is None or previous.kind is not NodeKind.RAW_TEXT:
        return None
    text = previous.text.strip()
    single = SINGLE_LINE_FRONT_MATTER.match(text)
    if single:
        return PathCandidate(text=single.group("path"), strategy="front_matter")
    lines = text.splitlines()
    if len(lines) < 3 or lines[0].strip() != "---" or lines[-1].strip() != "---":
        return None
    match = FRONT_MATTER_PATH.search("\n".join(lines[1:-1]))
    if not match:
        return None
    return PathCandidate(text=clean_token(match.group("path")), strategy="front_matter")


def from_preceding_node(nodes: Sequence[DocumentNode], code_index: int) -> PathCandidate | None:
    """Heading, standalone path, ``File:`` marker or inline code before the fence."""
    previous = _previous_node(nodes, code_index)
    if previous is None or previous.kind not in (
        NodeKind.HEADING,
        NodeKind.PARAGRAPH,
        NodeKind.RAW_TEXT,
    ):
        return None
    text = previous.text.strip()

    if previous.kind is NodeKind.HEADING:
        heading = HEADING_PATH.match(clean_token(text))
        if heading:
            token = clean_token(heading.group("path"))
            if looks_like_path(token):
                return PathCandidate(text=token, strategy="heading")

    standalone = clean_token(text)
    if looks_like_path(standalone):
        return PathCandidate(text=standalone, strategy="standalone_path")

    marker = MARKER_PATH.match(text)
    if marker:
        token = clean_token(marker.group("path"))
        if looks_like_path(token):
            return PathCandidate(text=token, strategy="file_marker")

    inline = [m.group("path") for m in INLINE_CODE_PATH.finditer(text)]
    for token in reversed(inline):
        if looks_like_path(token):
            return PathCandidate(text=token, strategy="inline_code")
    return None


def from_header_comment(nodes: Sequence[DocumentNode], code_index: int) -> PathCandidate | None:
    """``* path`` line inside a leading ``/* ... */`` comment."""
    lines = nodes[code_index].text.lstrip("\n").splitlines()
    if not lines or not lines[0].lstrip().startswith("/*") or "*/" in lines[0]:
        return None
    for line in lines[1:]:
        if "*/" in line:
            break
        match = HEADER_COMMENT_LINE.match(line)
        if match and looks_like_path(match.group("path")):
            return PathCandidate(text=match.group("path"), strategy="header_comment")
    return None


def from_list_item(nodes: Sequence[DocumentNode], code_index: int) -> PathCandidate | None:
    """Bold code path in the closest list item within the lookback window."""
    seen = 0
    for index in range(code_index - 1, -1, -1):
        node = nodes[index]
        if node.is_blank:
            continue
        if node.kind is NodeKind.FENCED_CODE or seen >= LIST_ITEM_LOOKBACK:
            return None
        seen += 1
        if node.kind is not NodeKind.LIST_ITEM:
            continue
        match = BOLD_CODE_PATH.search(node.text)
        if not match:
            return None
        token = clean_token(match.group("path") or match.group("inner"))
        return PathCandidate(text=token, strategy="list_item")
    return None


def from_first_line_comment(nodes: Sequence[DocumentNode], code_index: int) -> PathCandidate | None:
    """Single-line comment naming the file as the first code line."""
    code = nodes[code_index].text
    first_line = code.split("\n", 1)[0]
    for pattern in FIRST_LINE_COMMENT_PATTERNS:
        match = pattern.match(first_line)
        if match and looks_like_path(clean_token(match.group("path"))):
            return PathCandidate(
                text=clean_token(match.group("path")),
                strategy="first_line_comment",
                strips_first_line=True,
            )
    return None


# Ordered by descending confidence
LOCATOR_STRATEGIES: list[tuple[str, Strategy]] = [
    ("front_matter", from_front_matter),
    ("preceding_node", from_preceding_node),
    ("header_comment", from_header_comment),
    ("list_item", from_list_item),
    ("first_line_comment", from_first_line_comment),
]


def locate(
    nodes: Sequence[DocumentNode],
    code_index: int,
    strategies: Sequence[tuple[str, Strategy]] = LOCATOR_STRATEGIES,
    rejected: list[str] | None = None,
) -> PathCandidate | None:
    """Run the strategy cascade for the fenced node at ``code_index``.

    Args:
        nodes: Tokenized document.
        code_index: Index of a FENCED_CODE node in ``nodes``.
        strategies: Ordered (name, strategy) pairs.
        rejected: If given, collects one "strategy: path (reason)" entry per
            candidate that failed validation.

    Returns:
        The first candidate that passes path validation, or None.
    """
    node = nodes[code_index]
    if node.kind is not NodeKind.FENCED_CODE:
        raise ValueError(f"Node {code_index} is {node.kind.value}, not fenced code")

    for name, strategy in strategies:
        candidate = strategy(nodes, code_index)
        if candidate is None:
            continue
        check = check_path(candidate.text)
        if check.valid:
            logger.debug("Strategy %s located %s for line %d", name, check.path, node.line)
            return candidate
        logger.warning(
            "Ignoring path %r from %s near line %d (%s).",
            candidate.text,
            candidate.strategy,
            node.line,
            check.reason,
        )
        if rejected is not None:
            rejected.append(f"{candidate.strategy}: {candidate.text!r} ({check.reason})")
    return None


def strip_first_line(content: str) -> str:
    """Drop the first line and its newline."""
    _, _, rest = content.partition("\n")
    return rest


__all__ = [
    "LIST_ITEM_LOOKBACK",
    "LOCATOR_STRATEGIES",
    "clean_token",
    "from_first_line_comment",
    "from_front_matter",
    "from_header_comment",
    "from_list_item",
    "from_preceding_node",
    "locate",
    "looks_like_path",
    "strip_first_line",
]
