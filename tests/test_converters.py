"""Tests for the document converters and their registry."""

import json
import subprocess
import tempfile
from pathlib import Path

import pytest

from cpw.converters import (
    ConverterRegistry,
    MarkdownConverter,
    PandocConverter,
    PdfToTextConverter,
    PlainTextConverter,
    build_registry,
    parse_executables,
    select_converter,
)
from cpw.converters.base import Converter
from cpw.converters.html import HtmlFileConverter
from cpw.converters.markdown import parse_simple_yaml, split_frontmatter
from cpw.converters.pdftotext import parse_pdfinfo, text_to_markdown
from cpw.converters.text import decode_text, detect_language, title_from_content
from cpw.errors import NoProcessorAvailable, ProcessingFailed
from cpw.models import ConversionResult, ProcessResult


class FakeConverter(Converter):
    def __init__(self, id, extensions, weight, available=True):
        self.id = id
        self.label = id
        self.extensions = tuple(extensions)
        self.weight = weight
        self.available = available

    def check_requirements(self):
        return self.available

    def process(self, path):
        return ConversionResult(markdown=f"converted by {self.id}")


class ScriptedRunner:
    """Answers external tool calls from a dict of executable -> handler."""

    def __init__(self, handlers):
        self.handlers = handlers
        self.calls = []

    def __call__(self, executable, args, timeout):
        self.calls.append((executable, list(args), timeout))
        handler = self.handlers.get(executable)
        if handler is None:
            raise FileNotFoundError(executable)
        return handler(args)


def _write(suffix: str, data: bytes | str) -> Path:
    mode = "wb" if isinstance(data, bytes) else "w"
    with tempfile.NamedTemporaryFile(suffix=suffix, mode=mode, delete=False) as f:
        f.write(data)
    return Path(f.name)


# Registry


def test_lowest_weight_converter_wins():
    heavy = FakeConverter("heavy", ["pdf"], 10)
    light = FakeConverter("light", ["pdf"], 0)
    assert select_converter([heavy, light], "pdf") is light
    assert select_converter([heavy, light], ".PDF") is light


def test_unavailable_converter_is_skipped():
    light = FakeConverter("light", ["pdf"], 0, available=False)
    heavy = FakeConverter("heavy", ["pdf"], 10)
    assert select_converter([light, heavy], "pdf") is heavy


def test_no_converter_raises_with_extension():
    with pytest.raises(NoProcessorAvailable) as exc:
        select_converter([FakeConverter("md", ["md"], 0)], "xyz")
    assert exc.value.extension == "xyz"


def test_registry_queries():
    registry = ConverterRegistry([
        FakeConverter("a", ["pdf", "docx"], 5),
        FakeConverter("b", ["pdf"], -1, available=False),
    ])
    assert [c.id for c in registry.converters_for("pdf")] == ["b", "a"]
    assert registry.supported_extensions() == ["docx", "pdf"]
    assert registry.is_supported(".DOCX")
    assert [c.id for c in registry.available()] == ["a"]
    assert [c.id for c, _ in registry.unavailable()] == ["b"]
    assert registry.select("pdf").id == "a"
    with pytest.raises(ValueError):
        registry.register(FakeConverter("a", ["txt"], 0))


def test_select_for_file_names_the_file():
    registry = ConverterRegistry([FakeConverter("a", ["pdf"], 0)])
    with pytest.raises(NoProcessorAvailable) as exc:
        registry.select_for_file(Path("/tmp/notes.xyz"))
    assert exc.value.filename == "notes.xyz"


def test_parse_executables():
    text = "docx,odt|/opt/pandoc/bin/pandoc\n# comment\n\npdf|/usr/local/bin/pdftotext\nbroken line\nPDF|/other"
    assert parse_executables(text) == {
        "docx": "/opt/pandoc/bin/pandoc",
        "odt": "/opt/pandoc/bin/pandoc",
        "pdf": "/usr/local/bin/pdftotext",
    }


def test_build_registry_uses_configured_executables():
    config = {"converters": {"executables": "docx|/custom/pandoc\npdf|/custom/pdftotext"}}
    registry = build_registry(config, runner=ScriptedRunner({}))
    assert registry.get("pandoc").executable == "/custom/pandoc"
    assert registry.get("pdftotext").executable == "/custom/pdftotext"
    ids = [c.id for c in registry.all()]
    assert ids[:2] == ["pdftotext", "pandoc"]
    assert set(ids) == {"pdftotext", "pandoc", "markdown", "plain_text", "html", "pypdf", "docx"}


def test_missing_binaries_fall_back_to_in_process_converters():
    registry = build_registry(runner=ScriptedRunner({}))
    assert registry.select("md").id == "markdown"
    assert registry.select("txt").id == "plain_text"
    assert registry.select("pdf").id == "pypdf"
    assert registry.select("docx").id == "docx"
    errors = dict((c.id, e) for c, e in registry.unavailable())
    assert "pandoc" in errors and errors["pandoc"]


# Plain text


def test_decode_text_handles_cp1252():
    assert decode_text("Héllo wörld".encode("cp1252")) == "Héllo wörld"
    assert decode_text("naïve".encode("utf-8")) == "naïve"


def test_detect_language():
    assert detect_language("The cat and the dog of the house and the garden.") == "en"
    assert detect_language("Der Hund und die Katze und der Baum und die Blume.") == "de"
    assert detect_language("short") is None


def test_title_from_content():
    assert title_from_content("\n\n  First line  \nsecond") == "First line"
    long_title = title_from_content("x" * 250)
    assert len(long_title) == 200
    assert long_title.endswith("...")
    assert title_from_content("   \n ") is None


def test_plain_text_converter():
    path = _write(".txt", b"Meeting notes\r\nThe plan and the budget of the team.\rDone.")
    result = PlainTextConverter().process(path)
    assert result.markdown == "Meeting notes\nThe plan and the budget of the team.\nDone."
    meta = result.metadata
    assert meta.title == "Meeting notes"
    assert meta.custom_properties["line_count"] == "3"
    assert meta.custom_properties["word_count"] == "11"
    assert meta.created_date is not None


# Markdown


def test_markdown_frontmatter():
    path = _write(".md", "---\ntitle: Test Doc\nauthor: [Ann, Bob]\ndate: 2024-01-15\ntags: [x, y]\n---\n# Hello\n\nBody text.")
    result = MarkdownConverter().process(path)
    assert result.markdown.startswith("# Hello")
    assert "title:" not in result.markdown
    meta = result.metadata
    assert meta.title == "Test Doc"
    assert meta.author == "Ann, Bob"
    assert meta.created_date.year == 2024
    assert meta.custom_properties["frontmatter_tags"] == "x, y"
    assert meta.custom_properties["has_frontmatter"] == "true"


def test_markdown_title_from_headings():
    path = _write(".md", "## Intro\n\n# Main Title\n\n```\n# not a heading\n```\n")
    meta = MarkdownConverter().extract_metadata(path)
    assert meta.title == "Main Title"
    assert [(h.level, h.text) for h in meta.headings] == [(2, "Intro"), (1, "Main Title")]


def test_broken_yaml_uses_simple_parser():
    data, body = split_frontmatter("---\ntitle: Broken: yes: [\nkeywords:\n  - a\n  - 'b'\n---\nBody")
    assert data == {"title": "Broken: yes: [", "keywords": ["a", "b"]}
    assert body == "Body"


def test_parse_simple_yaml_strips_quotes():
    assert parse_simple_yaml('name: "Quoted"\nother: \'single\'') == {"name": "Quoted", "other": "single"}


def test_parse_simple_yaml_keeps_scalar_before_items():
    data = parse_simple_yaml("tags: a\n  - b\n  - c\nempty:\n  - x")
    assert data == {"tags": ["a", "b", "c"], "empty": ["x"]}


# HTML files


def test_html_file_converter():
    path = _write(".html", "<html><head><title>Local Page</title></head><body><main><h1>Hi</h1><p>There</p></main></body></html>")
    result = HtmlFileConverter().process(path)
    assert result.markdown == "# Hi\n\nThere"
    assert result.metadata.title == "Local Page"


def test_html_file_without_content_fails():
    path = _write(".html", "<html><body><script>1</script></body></html>")
    with pytest.raises(ProcessingFailed):
        HtmlFileConverter().process(path)


# External tools


def test_pdftotext_converter():
    def pdftotext(args):
        if args == ["-v"]:
            return ProcessResult(stdout="", exit_code=99, stderr="pdftotext version 22.02.0")
        return ProcessResult(stdout="INTRODUCTION\n\nSome body text here.\n", exit_code=0)

    def pdfinfo(args):
        return ProcessResult(stdout="Title:          Annual Report\nAuthor:         Jane\nPages:          3\n", exit_code=0)

    runner = ScriptedRunner({"pdftotext": pdftotext, "pdfinfo": pdfinfo})
    converter = PdfToTextConverter(runner=runner)
    assert converter.check_requirements()

    path = _write(".pdf", b"%PDF-1.4 fake")
    result = converter.process(path)
    assert result.markdown.startswith(f"# {path.stem.replace('_', ' ').replace('-', ' ').title()}")
    assert "## Introduction" in result.markdown
    assert "Some body text here." in result.markdown
    assert result.metadata.title == "Annual Report"
    assert result.metadata.author == "Jane"
    assert result.metadata.custom_properties["pages"] == "3"

    convert_call = runner.calls[1]
    assert convert_call[1] == ["-layout", "-enc", "UTF-8", str(path), "-"]
    assert convert_call[2] == 120


def test_pdftotext_failure_is_processing_failed():
    def pdftotext(args):
        if args == ["-v"]:
            return ProcessResult(stdout="pdftotext 22", exit_code=0)
        return ProcessResult(stdout="", exit_code=1, stderr="Syntax Error")

    converter = PdfToTextConverter(runner=ScriptedRunner({"pdftotext": pdftotext}))
    with pytest.raises(ProcessingFailed) as exc:
        converter.process(_write(".pdf", b"junk"))
    assert exc.value.processor_id == "pdftotext"


def test_external_timeout_is_processing_failed():
    def pandoc(args):
        raise subprocess.TimeoutExpired("pandoc", 120)

    converter = PandocConverter("pandoc", runner=ScriptedRunner({"pandoc": pandoc}))
    with pytest.raises(ProcessingFailed):
        converter.process(_write(".docx", b"PK"))


def test_text_to_markdown_headings():
    md = text_to_markdown("SUMMARY\n\nShort line\n\nA normal paragraph line that continues\nonto the next line.", "q3_report.pdf")
    assert md.startswith("# Q3 Report\n\n")
    assert "## Summary" in md
    assert "### Short line" in md
    assert "A normal paragraph line that continues" in md


def test_parse_pdfinfo():
    info = parse_pdfinfo("Title:   Doc\nPage size:  612 x 792 pts\nEmpty:\n")
    assert info == {"title": "Doc", "page_size": "612 x 792 pts"}


def test_pandoc_converter():
    meta = {"title": "Quarterly", "author": ["Ann", "Bob"], "date": "2024-03-01", "lang": "de", "subject": "Finance"}

    def pandoc(args):
        if args == ["--version"]:
            return ProcessResult(stdout="pandoc 3.1", exit_code=0)
        if "-t" in args and args[args.index("-t") + 1] == "markdown":
            return ProcessResult(stdout="# Quarterly\n\nNumbers.\n", exit_code=0)
        return ProcessResult(stdout=json.dumps(meta), exit_code=0)

    runner = ScriptedRunner({"pandoc": pandoc})
    converter = PandocConverter("pandoc", runner=runner)
    path = _write(".docx", b"PK")
    result = converter.process(path)

    assert result.markdown == "# Quarterly\n\nNumbers."
    assert runner.calls[0][1] == ["-f", "docx", "-t", "markdown", "--wrap=none", str(path)]
    assert result.metadata.title == "Quarterly"
    assert result.metadata.author == "Ann, Bob"
    assert result.metadata.language == "de"
    assert result.metadata.created_date.month == 3
    assert result.metadata.custom_properties["subject"] == "Finance"


def test_pandoc_metadata_failure_does_not_raise():
    def pandoc(args):
        return ProcessResult(stdout="not json", exit_code=0)

    converter = PandocConverter("pandoc", runner=ScriptedRunner({"pandoc": pandoc}))
    path = _write(".odt", b"x")
    meta = converter.extract_metadata(path)
    assert meta.title == path.stem
