"""Tests for the document processing service."""

import tempfile
from pathlib import Path

import pytest

from cpw.converters import ConverterRegistry, MarkdownConverter, PlainTextConverter
from cpw.converters.base import Converter
from cpw.errors import NoProcessorAvailable, ProcessingFailed
from cpw.ingest.processor import process_directory, process_file, validate_file


class ExplodingConverter(Converter):
    id = "exploding"
    label = "Exploding"
    extensions = ("boom",)

    def process(self, path):
        raise RuntimeError("kaboom")


def _registry():
    return ConverterRegistry([MarkdownConverter(), PlainTextConverter(), ExplodingConverter()])


def test_process_markdown_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "guide.md"
        path.write_text("---\ntitle: Guide\n---\n# Guide\n\nSteps.")
        doc = process_file(path, _registry())
        assert doc.source_identifier == "guide.md"
        assert doc.processor_id == "markdown"
        assert doc.source_kind == "document"
        assert doc.title == "Guide"
        assert doc.markdown_content == "# Guide\n\nSteps."
        assert len(doc.id) == 32


def test_title_falls_back_to_file_stem():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "untitled.md"
        path.write_text("just text, no headings")
        assert process_file(path, _registry()).title == "untitled"


def test_unsupported_extension():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "data.xyz"
        path.write_text("x")
        with pytest.raises(NoProcessorAvailable):
            process_file(path, _registry())


def test_unexpected_error_is_wrapped():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "file.boom"
        path.write_text("x")
        with pytest.raises(ProcessingFailed) as exc:
            process_file(path, _registry())
        assert exc.value.processor_id == "exploding"
        assert exc.value.filename == "file.boom"
        assert "kaboom" in str(exc.value)


def test_validate_file():
    registry = _registry()
    with tempfile.TemporaryDirectory() as tmpdir:
        ok = Path(tmpdir) / "ok.txt"
        ok.write_text("hello")
        assert validate_file(ok, registry) == []

        empty = Path(tmpdir) / "empty.txt"
        empty.write_text("")
        assert validate_file(empty, registry) == ["File is empty"]

        big = Path(tmpdir) / "big.txt"
        big.write_text("x" * 100)
        problems = validate_file(big, registry, {"max_file_size": 10})
        assert len(problems) == 1 and "maximum size" in problems[0]

        odd = Path(tmpdir) / "odd.xyz"
        odd.write_text("x")
        assert validate_file(odd, registry) == ["Unsupported file type: .xyz"]

        assert validate_file(Path(tmpdir) / "missing.txt", registry)[0].startswith("File not found")


def test_process_directory_skips_unsupported_and_failures():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "a.md").write_text("# A")
        (root / "sub").mkdir()
        (root / "sub" / "b.txt").write_text("B text")
        (root / "c.xyz").write_text("ignored")
        (root / "d.boom").write_text("fails")
        (root / ".hidden.md").write_text("# hidden")
        docs = process_directory(root, _registry())
        assert [d.source_identifier for d in docs] == ["a.md", "b.txt"]
