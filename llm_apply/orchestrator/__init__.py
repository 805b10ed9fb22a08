"""Extraction orchestrator."""

from .extract import extract_all, extract_all_sync, merge_blocks

__all__ = ["extract_all", "extract_all_sync", "merge_blocks"]
