"""Parsers that turn free-form LLM output into file blocks."""

from .explicit_blocks import ExplicitSyntax, extract_explicit
from .heuristics import LOCATOR_STRATEGIES, locate
from .markdown import DocumentNode, NodeKind, TokenizeError, tokenize

__all__ = [
    "DocumentNode",
    "ExplicitSyntax",
    "LOCATOR_STRATEGIES",
    "NodeKind",
    "TokenizeError",
    "extract_explicit",
    "locate",
    "tokenize",
]
