"""Block-level markdown tokenizer producing DocumentNodes.

Only the block structure the path locator needs is recognised: ATX
headings, paragraphs, list items, fenced code, front-matter / rule lines
and blank runs. Inline markup is left in ``text`` untouched.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class NodeKind(str, Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST_ITEM = "list_item"
    RAW_TEXT = "raw_text"
    FENCED_CODE = "fenced_code"
    SPACE = "space"


@dataclass(frozen=True)
class DocumentNode:
    """One block of the tokenized document.

    ``start``/``end`` are character offsets into the tokenized text and
    ``index`` is the node's position in the node list.
    """

    kind: NodeKind
    raw: str
    text: str
    index: int
    start: int
    end: int
    line: int
    lang: str | None = None
    fence: str | None = None  # opening fence line of fenced code
    level: int | None = None  # heading level

    @property
    def is_blank(self) -> bool:
        return self.kind is NodeKind.SPACE


Tokenizer = Callable[[str], list[DocumentNode]]


class TokenizeError(ValueError):
    """Raised when a document cannot be split into blocks."""


FENCE_OPEN_PATTERN = re.compile(r"^(?P<indent>[ \t]*)(?P<fence>`{3,}|~{3,})(?P<info>[^\n]*)$")
HEADING_PATTERN = re.compile(r"^ {0,3}(?P<hashes>#{1,6})(?:[ \t]+(?P<text>.*?))?[ \t]*#*[ \t]*$")
LIST_ITEM_PATTERN = re.compile(r"^(?P<indent>[ \t]*)(?:[-*+]|\d{1,9}[.)])(?:[ \t]+(?P<text>.*))?$")
RULE_PATTERN = re.compile(r"^ {0,3}(?:-[ \t]*){3,}$|^ {0,3}(?:\*[ \t]*){3,}$|^ {0,3}(?:_[ \t]*){3,}$")
INLINE_FRONT_MATTER_PATTERN = re.compile(r"^ {0,3}---[ \t]+[\w-]+:.*?[ \t]---[ \t]*$")
FRONT_MATTER_DELIMITER = re.compile(r"^ {0,3}---[ \t]*$")
FRONT_MATTER_FIELD = re.compile(r"^[ \t]*[\w-]+:[ \t]*\S.*$")


@dataclass
class _Line:
    text: str
    start: int  # offset of first char
    end: int  # offset after the line break


def _split_lines(text: str) -> list[_Line]:
    lines: list[_Line] = []
    offset = 0
    for chunk in text.splitlines(keepends=True):
        body = chunk.rstrip("\r\n")
        lines.append(_Line(body, offset, offset + len(chunk)))
        offset += len(chunk)
    return lines


def _is_fence_close(line: str, fence: str) -> bool:
    stripped = line.strip()
    return (
        len(stripped) >= len(fence)
        and stripped[0] == fence[0]
        and stripped == fence[0] * len(stripped)
    )


def _dedent(line: str, indent: int) -> str:
    removable = len(line) - len(line.lstrip(" \t"))
    return line[min(indent, removable) :]


def _front_matter_end(lines: list[_Line], pos: int) -> int | None:
    """Index of the closing ``---`` if a front-matter block starts at ``pos``."""
    cursor = pos + 1
    while cursor < len(lines) and FRONT_MATTER_FIELD.match(lines[cursor].text):
        cursor += 1
    if cursor == pos + 1 or cursor >= len(lines):
        return None
    if FRONT_MATTER_DELIMITER.match(lines[cursor].text):
        return cursor
    return None


def _starts_block(line: str) -> bool:
    return bool(
        FENCE_OPEN_PATTERN.match(line)
        or HEADING_PATTERN.match(line)
        or LIST_ITEM_PATTERN.match(line)
        or RULE_PATTERN.match(line)
        or INLINE_FRONT_MATTER_PATTERN.match(line)
    )


def tokenize(text: str) -> list[DocumentNode]:
    """Split ``text`` into block-level DocumentNodes in document order."""
    if not isinstance(text, str):
        raise TokenizeError(f"Expected text, got {type(text).__name__}")

    lines = _split_lines(text)
    nodes: list[DocumentNode] = []

    def _emit(kind: NodeKind, first: int, last: int, body: str, **extra) -> None:
        start = lines[first].start
        end = lines[last].end
        nodes.append(
            DocumentNode(
                kind=kind,
                raw=text[start:end],
                text=body,
                index=len(nodes),
                start=start,
                end=end,
                line=first + 1,
                **extra,
            )
        )

    pos = 0
    while pos < len(lines):
        line = lines[pos].text

        if not line.strip():
            last = pos
            while last + 1 < len(lines) and not lines[last + 1].text.strip():
                last += 1
            _emit(NodeKind.SPACE, pos, last, "")
            pos = last + 1
            continue

        fence_match = FENCE_OPEN_PATTERN.match(line)
        info = fence_match.group("info").strip() if fence_match else ""
        # Backtick fences may not carry backticks in their info string
        if fence_match and not (fence_match.group("fence")[0] == "`" and "`" in info):
            fence = fence_match.group("fence")
            indent = len(fence_match.group("indent"))
            body_lines: list[str] = []
            last = pos
            cursor = pos + 1
            while cursor < len(lines):
                if _is_fence_close(lines[cursor].text, fence):
                    last = cursor
                    break
                body_lines.append(_dedent(lines[cursor].text, indent))
                last = cursor
                cursor += 1
            lang = info.split()[0] if info else None
            _emit(
                NodeKind.FENCED_CODE,
                pos,
                last,
                "\n".join(body_lines),
                lang=lang,
                fence=line.strip(),
            )
            pos = last + 1
            continue

        heading = HEADING_PATTERN.match(line)
        if heading:
            _emit(
                NodeKind.HEADING,
                pos,
                pos,
                (heading.group("text") or "").strip(),
                level=len(heading.group("hashes")),
            )
            pos += 1
            continue

        if INLINE_FRONT_MATTER_PATTERN.match(line):
            _emit(NodeKind.RAW_TEXT, pos, pos, line.strip())
            pos += 1
            continue

        if FRONT_MATTER_DELIMITER.match(line):
            closing = _front_matter_end(lines, pos)
            last = closing if closing is not None else pos
            body = "\n".join(lines[i].text.strip() for i in range(pos, last + 1))
            _emit(NodeKind.RAW_TEXT, pos, last, body)
            pos = last + 1
            continue

        if RULE_PATTERN.match(line):
            _emit(NodeKind.RAW_TEXT, pos, pos, line.strip())
            pos += 1
            continue

        item = LIST_ITEM_PATTERN.match(line)
        if item:
            item_indent = len(item.group("indent"))
            parts = [(item.group("text") or "").strip()]
            last = pos
            # Lazy continuation: indented lines that do not open a new block
            while last + 1 < len(lines):
                follower = lines[last + 1].text
                if not follower.strip() or _starts_block(follower):
                    break
                if len(follower) - len(follower.lstrip(" \t")) <= item_indent:
                    break
                parts.append(follower.strip())
                last += 1
            _emit(NodeKind.LIST_ITEM, pos, last, "\n".join(parts))
            pos = last + 1
            continue

        last = pos
        while last + 1 < len(lines):
            follower = lines[last + 1].text
            if not follower.strip() or _starts_block(follower):
                break
            last += 1
        body = "\n".join(lines[i].text.strip() for i in range(pos, last + 1))
        _emit(NodeKind.PARAGRAPH, pos, last, body)
        pos = last + 1

    return nodes


__all__ = [
    "DocumentNode",
    "NodeKind",
    "TokenizeError",
    "Tokenizer",
    "tokenize",
]
