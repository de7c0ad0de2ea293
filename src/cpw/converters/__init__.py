"""Document converters for various file formats."""

from pathlib import Path
from typing import Any

from ..config import get_section
from .base import Converter, normalize_extension
from .docx import DocxConverter
from .external import ExternalToolConverter, Runner, parse_executables, run_process
from .html import HtmlFileConverter
from .markdown import MarkdownConverter
from .pandoc import PandocConverter
from .pdftotext import PdfToTextConverter
from .pypdf import PypdfConverter
from .registry import ConverterRegistry, select_converter
from .text import PlainTextConverter


def _pdfinfo_path(pdftotext: str, configured: str) -> str:
    # A custom pdftotext location usually has pdfinfo right next to it
    if configured == "pdfinfo" and pdftotext != "pdftotext":
        sibling = Path(pdftotext).with_name("pdfinfo")
        if sibling.exists():
            return str(sibling)
    return configured


def build_registry(config: dict[str, Any] | None = None, runner: Runner | None = None) -> ConverterRegistry:
    """Registry with every shipped converter, wired from the converters config."""
    cfg = get_section(config or {}, "converters")
    executables = parse_executables(cfg.get("executables", ""))
    timeouts = {"timeout": cfg["timeout"], "metadata_timeout": cfg["metadata_timeout"]}

    pandoc = executables.get("docx") or executables.get("odt") or cfg["pandoc_path"]
    pdftotext = executables.get("pdf") or cfg["pdftotext_path"]

    return ConverterRegistry([
        PdfToTextConverter(pdftotext, _pdfinfo_path(pdftotext, cfg["pdfinfo_path"]), runner=runner, **timeouts),
        PandocConverter(pandoc, runner=runner, **timeouts),
        MarkdownConverter(),
        PlainTextConverter(),
        HtmlFileConverter(),
        PypdfConverter(),
        DocxConverter(),
    ])


__all__ = [
    "Converter",
    "ConverterRegistry",
    "DocxConverter",
    "ExternalToolConverter",
    "HtmlFileConverter",
    "MarkdownConverter",
    "PandocConverter",
    "PdfToTextConverter",
    "PlainTextConverter",
    "PypdfConverter",
    "build_registry",
    "normalize_extension",
    "parse_executables",
    "run_process",
    "select_converter",
]
