"""Tests for writing extracted blocks to disk."""

import logging

from llm_apply.types import BlockSource, ExtractionResult, FileBlock
from llm_apply.writer import FileWriter, write_files


def block(path, content="x = 1", source=BlockSource.HEURISTIC):
    return FileBlock(path=path, content=content, source=source)


def result_of(*blocks):
    return ExtractionResult(files={b.path: b for b in blocks})


class TestFileWriter:
    """Sandboxed whole-file writes."""

    def test_creates_parent_directories(self, tmp_path):
        outcome = FileWriter(root=tmp_path).write(block("src/deep/nested/app.py"))
        assert outcome.success
        assert outcome.created
        assert (tmp_path / "src" / "deep" / "nested" / "app.py").read_text() == "x = 1\n"

    def test_trailing_newline_not_doubled(self, tmp_path):
        FileWriter(root=tmp_path).write(block("a.txt", "line\n"))
        assert (tmp_path / "a.txt").read_bytes() == b"line\n"

    def test_overwrite_existing(self, tmp_path):
        (tmp_path / "a.txt").write_text("old\n")
        outcome = FileWriter(root=tmp_path).write(block("a.txt", "new"))
        assert outcome.success
        assert not outcome.created
        assert (tmp_path / "a.txt").read_text() == "new\n"

    def test_bytes_written_utf8(self, tmp_path):
        outcome = FileWriter(root=tmp_path).write(block("u.txt", "héllo"))
        assert outcome.bytes_written == len("héllo\n".encode("utf-8"))
        assert (tmp_path / "u.txt").read_text(encoding="utf-8") == "héllo\n"

    def test_dry_run_writes_nothing(self, tmp_path):
        outcome = FileWriter(root=tmp_path, dry_run=True).write(block("src/a.py"))
        assert outcome.success
        assert outcome.bytes_written == 0
        assert not (tmp_path / "src").exists()

    def test_rejects_traversal(self, tmp_path, caplog):
        # FileBlock does not validate paths itself
        with caplog.at_level(logging.ERROR):
            outcome = FileWriter(root=tmp_path / "root").write(block("../escape.txt"))
        assert not outcome.success
        assert "Unsafe path" in outcome.error
        assert not (tmp_path / "escape.txt").exists()

    def test_rejects_absolute(self, tmp_path):
        outcome = FileWriter(root=tmp_path).write(block("/tmp/abs.txt"))
        assert not outcome.success

    def test_write_error_reported(self, tmp_path):
        (tmp_path / "taken").write_text("a file, not a directory")
        outcome = FileWriter(root=tmp_path).write(block("taken/child.txt"))
        assert not outcome.success
        assert outcome.error.startswith("Failed to write file")

    def test_write_all_keeps_order(self, tmp_path):
        outcomes = FileWriter(root=tmp_path).write_all(
            result_of(block("b.txt"), block("a.txt", source=BlockSource.EXPLICIT_TAG))
        )
        assert [o.file_path for o in outcomes] == ["b.txt", "a.txt"]
        assert outcomes[1].source == "explicit_tag"


class TestWriteFiles:
    def test_defaults_to_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        outcomes = write_files(result_of(block("out/file.txt", "hi")))
        assert outcomes[0].success
        assert (tmp_path / "out" / "file.txt").read_text() == "hi\n"

    def test_explicit_root(self, tmp_path):
        write_files(result_of(block("f.txt")), root=tmp_path)
        assert (tmp_path / "f.txt").exists()

    def test_empty_result(self, tmp_path):
        assert write_files(ExtractionResult(), root=tmp_path) == []
