"""In-process DOCX fallback using python-docx."""

import importlib.util
import logging
import re
from pathlib import Path

from ..errors import ProcessingFailed
from ..models import ConversionResult, DocumentMetadata, Heading, word_count
from .base import Converter, file_properties

logger = logging.getLogger(__name__)


def heading_level(style_name: str | None) -> int | None:
    """Word's "Heading N" / "Title" styles map to Markdown heading levels."""
    if not style_name:
        return None
    if style_name == "Title":
        return 1
    m = re.match(r"^Heading (\d)$", style_name)
    if m:
        return min(int(m.group(1)), 6)
    return None


class DocxConverter(Converter):
    id = "docx"
    label = "python-docx"
    extensions = ("docx",)
    weight = 20

    def check_requirements(self) -> bool:
        return importlib.util.find_spec("docx") is not None

    def requirement_errors(self) -> list[str]:
        return [] if self.check_requirements() else ["The python-docx package is not installed"]

    def _open(self, path: Path):
        from docx import Document
        from docx.opc.exceptions import PackageNotFoundError

        try:
            return Document(str(path))
        except (OSError, PackageNotFoundError, ValueError) as e:
            raise ProcessingFailed(self.id, path.name, str(e)) from e

    def process(self, path: Path) -> ConversionResult:
        logger.info(f"Converting {path.name} with python-docx")
        doc = self._open(path)

        blocks = []
        headings = []
        for p in doc.paragraphs:
            text = p.text.strip()
            if not text:
                continue
            level = heading_level(p.style.name if p.style is not None else None)
            if level:
                blocks.append(f"{'#' * level} {text}")
                headings.append(Heading(level, text))
            else:
                blocks.append(text)

        markdown = "\n\n".join(blocks)
        metadata = self._metadata(doc, path)
        metadata.headings = headings
        metadata.custom_properties["word_count"] = str(word_count(markdown))
        return ConversionResult(markdown=markdown, metadata=metadata)

    def extract_metadata(self, path: Path) -> DocumentMetadata:
        try:
            return self._metadata(self._open(path), path)
        except ProcessingFailed as e:
            logger.warning(f"Metadata extraction failed: {e}")
            return DocumentMetadata(title=path.stem)

    def _metadata(self, doc, path: Path) -> DocumentMetadata:
        core = doc.core_properties
        props = file_properties(path)
        if core.subject:
            props["subject"] = core.subject
        if core.keywords:
            props["keywords"] = core.keywords
        return DocumentMetadata(
            title=core.title or path.stem,
            author=core.author or None,
            created_date=core.created,
            language=core.language or None,
            custom_properties=props,
        )
