"""Utility tools for project-aware oracle context and content cleanup."""

from .directory_structure import get_directory_structure, render_directory_structure
from .json_comments import clean_json_content, strip_json_comments

__all__ = [
    "clean_json_content",
    "get_directory_structure",
    "render_directory_structure",
    "strip_json_comments",
]
