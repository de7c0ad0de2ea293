"""In-process PDF fallback using pypdf."""

import importlib.util
import logging
import re
from pathlib import Path

from ..errors import ProcessingFailed
from ..models import ConversionResult, DocumentMetadata, word_count
from .base import Converter, file_properties

logger = logging.getLogger(__name__)


def clean_page(text: str) -> str:
    """Rejoin words that pypdf splits across lines.

    pypdf often keeps the PDF's hard line breaks, which gives one-word-per-line
    output for flowing text. Short lines are joined into paragraphs while blank
    lines and lines that look like structure (timestamps, speaker labels,
    headers, bullets) stay on their own.
    """
    paragraphs: list[str] = []
    current: list[str] = []

    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped:
            if current:
                paragraphs.append(" ".join(current))
                current = []
            continue

        is_structural = bool(
            re.match(r"^\d{2}:\d{2}(:\d{2})?$", stripped)  # timestamp
            or re.match(r"^[A-Z][a-z]+ [A-Z][a-z]+:$", stripped)  # "First Last:"
            or re.match(r"^#{1,6}\s", stripped)
            or re.match(r"^[-*•]\s", stripped)
        )

        if is_structural:
            if current:
                paragraphs.append(" ".join(current))
                current = []
            paragraphs.append(stripped)
        else:
            current.append(stripped)

    if current:
        paragraphs.append(" ".join(current))

    return "\n\n".join(paragraphs)


def _usable_title(value: str | None) -> str | None:
    # PDF producers often stuff junk into the title field
    if not value:
        return None
    t = value.strip()
    if t and not t.startswith(("{", "[")) and len(t) < 200 and "\n" not in t:
        return t
    return None


class PypdfConverter(Converter):
    id = "pypdf"
    label = "pypdf"
    extensions = ("pdf",)
    weight = 20

    def check_requirements(self) -> bool:
        return importlib.util.find_spec("pypdf") is not None

    def requirement_errors(self) -> list[str]:
        return [] if self.check_requirements() else ["The pypdf package is not installed"]

    def _read(self, path: Path):
        from pypdf import PdfReader
        from pypdf.errors import PyPdfError

        try:
            return PdfReader(str(path))
        except (OSError, PyPdfError) as e:
            raise ProcessingFailed(self.id, path.name, str(e)) from e

    def process(self, path: Path) -> ConversionResult:
        logger.info(f"Extracting PDF text from {path.name} with pypdf")
        reader = self._read(path)
        pages = []
        for page in reader.pages:
            text = page.extract_text()
            if text and text.strip():
                pages.append(clean_page(text))

        if not pages:
            raise ProcessingFailed(self.id, path.name, "no text could be extracted")

        markdown = "\n\n".join(pages)
        metadata = self._metadata(reader, path)
        metadata.custom_properties["word_count"] = str(word_count(markdown))
        return ConversionResult(markdown=markdown, metadata=metadata)

    def extract_metadata(self, path: Path) -> DocumentMetadata:
        try:
            return self._metadata(self._read(path), path)
        except ProcessingFailed as e:
            logger.warning(f"Metadata extraction failed: {e}")
            return DocumentMetadata(title=path.stem)

    def _metadata(self, reader, path: Path) -> DocumentMetadata:
        meta = reader.metadata
        props = file_properties(path)
        props["pages"] = str(len(reader.pages))
        title = author = created = None
        if meta:
            title = _usable_title(meta.title)
            author = meta.author.strip() if meta.author else None
            try:
                created = meta.creation_date
            except ValueError:
                created = None
        return DocumentMetadata(
            title=title or path.stem,
            author=author or None,
            created_date=created,
            custom_properties=props,
        )
