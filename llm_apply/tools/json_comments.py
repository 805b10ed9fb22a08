"""Remove ``//`` and ``/* */`` comments that LLMs add to JSON files."""

from __future__ import annotations

import json
import logging
import re

logger = logging.getLogger(__name__)

# Escaped quotes and strings are matched first so comment markers inside
# string values survive; only group 1 is a comment.
JSON_COMMENT_PATTERN = re.compile(r'\\"|"(?:\\"|[^"])*"|(//.*|/\*[\s\S]*?\*/)')

JSON_SUFFIXES = (".json",)


def strip_json_comments(text: str) -> str:
    """Strip comments and pretty-print with 2-space indent when the result parses.

    If the stripped text is still not valid JSON, its lines are trimmed and
    blank lines dropped instead.
    """
    stripped = JSON_COMMENT_PATTERN.sub(lambda m: "" if m.group(1) else m.group(0), text)
    try:
        return json.dumps(json.loads(stripped), indent=2, ensure_ascii=False)
    except ValueError as exc:
        logger.warning("JSON still invalid after stripping comments (%s); keeping stripped text.", exc)
        return "\n".join(line.strip() for line in stripped.split("\n") if line.strip())


def has_json_comments(text: str) -> bool:
    return any(m.group(1) for m in JSON_COMMENT_PATTERN.finditer(text))


def clean_json_content(path: str, content: str) -> str:
    """Return ``content`` without comments if ``path`` is a JSON file that has any.

    Comment-free JSON is returned untouched, keeping the model's formatting.
    """
    if not path.lower().endswith(JSON_SUFFIXES) or not has_json_comments(content):
        return content
    logger.info("Stripping comments from %s", path)
    return strip_json_comments(content)


__all__ = ["clean_json_content", "has_json_comments", "strip_json_comments"]
