"""Core types for llm-apply - Pydantic models for extracted file blocks."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BlockSource(str, Enum):
    """Where a file block's path came from."""

    EXPLICIT_TAG = "explicit_tag"  # <file path="...">...</file>
    EXPLICIT_COMMENT = "explicit_comment"  # /* START OF ... */ ... /* END OF ... */
    HEURISTIC = "heuristic"
    ORACLE = "oracle"

    @property
    def is_explicit(self) -> bool:
        return self in (BlockSource.EXPLICIT_TAG, BlockSource.EXPLICIT_COMMENT)


class FileBlock(BaseModel):
    """A single file to write: validated relative path plus full content."""

    path: str = Field(min_length=1)
    content: str
    source: BlockSource
    strategy: str | None = None  # heuristic strategy name, or "oracle"
    language: str | None = None
    block_index: int | None = None  # position among fenced blocks

    model_config = ConfigDict(frozen=True)


class PathCandidate(BaseModel):
    """A path proposed by one heuristic strategy, before validation."""

    text: str
    strategy: str
    strips_first_line: bool = False  # content must drop the line the path came from

    model_config = ConfigDict(frozen=True)


@dataclass
class UnresolvedBlock:
    """A fenced block that was dropped because no path could be determined."""

    block_index: int
    language: str | None
    reason: str
    preview: str = ""


@dataclass
class ExtractionResult:
    """Outcome of one extraction pass.

    ``files`` maps path -> FileBlock in order of first assignment.
    """

    files: dict[str, FileBlock] = field(default_factory=dict)
    unresolved: list[UnresolvedBlock] = field(default_factory=list)
    explicit_matches: int = 0
    fenced_blocks: int = 0

    def __len__(self) -> int:
        return len(self.files)

    def __contains__(self, path: object) -> bool:
        return path in self.files

    def __getitem__(self, path: str) -> FileBlock:
        return self.files[path]

    def get(self, path: str) -> FileBlock | None:
        return self.files.get(path)

    def paths(self) -> list[str]:
        return list(self.files)

    def contents(self) -> dict[str, str]:
        """Plain path -> content mapping for callers that only need text."""
        return {path: block.content for path, block in self.files.items()}

    @property
    def markers_seen(self) -> int:
        """Explicit matches plus fenced blocks found in the input."""
        return self.explicit_matches + self.fenced_blocks


__all__ = [
    "BlockSource",
    "ExtractionResult",
    "FileBlock",
    "PathCandidate",
    "UnresolvedBlock",
]
