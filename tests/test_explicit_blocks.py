"""Tests for explicit comment/tag block extraction."""

import logging

from llm_apply.parsers.explicit_blocks import (
    EXPLICIT_PLACEHOLDER,
    ExplicitSyntax,
    extract_explicit,
    has_explicit_markers,
    trim_blank_edges,
)
from llm_apply.types import BlockSource

COMMENT_INPUT = """Here is the component:

/* START OF src/component.ts */
export class MyComponent {
  // component code
}
/* END OF src/component.ts */

Done.
"""


# ─────────────────────────────────────────────────────────────
# Comment-delimited blocks
# ─────────────────────────────────────────────────────────────


class TestCommentBlocks:
    """/* START OF path */ ... /* END OF path */"""

    def test_extracts_block(self):
        remaining, entries = extract_explicit(COMMENT_INPUT, ExplicitSyntax.COMMENT)
        assert len(entries) == 1
        block = entries[0]
        assert block.path == "src/component.ts"
        assert block.source is BlockSource.EXPLICIT_COMMENT
        assert block.content == "export class MyComponent {\n  // component code\n}"

    def test_span_replaced_with_placeholder(self):
        remaining, _ = extract_explicit(COMMENT_INPUT, ExplicitSyntax.COMMENT)
        assert "MyComponent" not in remaining
        assert "START OF" not in remaining
        assert EXPLICIT_PLACEHOLDER in remaining
        assert remaining.startswith("Here is the component:")
        assert remaining.rstrip().endswith("Done.")

    def test_mismatched_end_is_not_a_match(self):
        text = "/* START OF a/one.ts */\ncode\n/* END OF a/two.ts */\n"
        remaining, entries = extract_explicit(text, ExplicitSyntax.COMMENT)
        assert entries == []
        assert remaining == text

    def test_multiple_blocks_in_order(self):
        text = (
            "/* START OF a/one.ts */\none\n/* END OF a/one.ts */\n"
            "/* START OF a/two.ts */\ntwo\n/* END OF a/two.ts */\n"
        )
        _, entries = extract_explicit(text, ExplicitSyntax.COMMENT)
        assert [e.path for e in entries] == ["a/one.ts", "a/two.ts"]
        assert [e.content for e in entries] == ["one", "two"]


# ─────────────────────────────────────────────────────────────
# Tag blocks
# ─────────────────────────────────────────────────────────────


class TestTagBlocks:
    """<file path="...">...</file>"""

    def test_inline_tag(self):
        text = '<file path="data/config.json">{"key":"value"}</file>'
        _, entries = extract_explicit(text, ExplicitSyntax.TAG)
        assert len(entries) == 1
        assert entries[0].path == "data/config.json"
        assert entries[0].content == '{"key":"value"}'
        assert entries[0].source is BlockSource.EXPLICIT_TAG

    def test_multiline_tag_trims_one_blank_line_each_side(self):
        text = '<file path="docs/README.md">\n# Project Docs\n\nThis is the documentation.\n</file>'
        _, entries = extract_explicit(text, ExplicitSyntax.TAG)
        assert entries[0].content == "# Project Docs\n\nThis is the documentation."

    def test_name_and_filename_attributes(self):
        text = (
            "<file name='a/b.py'>print(1)</file>\n"
            '<file filename="c/d.py">print(2)</file>'
        )
        _, entries = extract_explicit(text, ExplicitSyntax.TAG)
        assert [e.path for e in entries] == ["a/b.py", "c/d.py"]

    def test_unsafe_path_skipped_with_warning(self, caplog):
        text = '<file path="../../etc/passwd">root:x:0:0</file>'
        with caplog.at_level(logging.WARNING):
            remaining, entries = extract_explicit(text, ExplicitSyntax.TAG)
        assert entries == []
        assert "root:x" not in remaining
        assert "unsafe path" in caplog.text

    def test_empty_content_skipped(self, caplog):
        text = '<file path="src/empty.py">\n\n</file>'
        with caplog.at_level(logging.WARNING):
            _, entries = extract_explicit(text, ExplicitSyntax.TAG)
        assert entries == []
        assert "no content" in caplog.text

    def test_empty_path_skipped(self, caplog):
        text = '<file path="">content</file>'
        with caplog.at_level(logging.WARNING):
            _, entries = extract_explicit(text, ExplicitSyntax.TAG)
        assert entries == []
        assert "without a path" in caplog.text

    def test_backslash_path_normalized(self):
        text = '<file path="src\\utils\\x.ts">x</file>'
        _, entries = extract_explicit(text, ExplicitSyntax.TAG)
        assert entries[0].path == "src/utils/x.ts"


class TestHelpers:
    def test_trim_blank_edges_only_one_line(self):
        assert trim_blank_edges("\n\ncode\n\n") == "\ncode\n"

    def test_trim_blank_edges_keeps_inline(self):
        assert trim_blank_edges("code") == "code"

    def test_has_explicit_markers(self):
        assert has_explicit_markers('<file path="x.py">')
        assert has_explicit_markers("/* START OF x.py */")
        assert not has_explicit_markers("plain text")
