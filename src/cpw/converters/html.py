"""Local HTML files, cleaned the same way as fetched webpages."""

import logging
from pathlib import Path

from ..errors import NoExtractableContent, ProcessingFailed
from ..ingest.webpage import convert_html, decode_html
from ..models import ConversionResult, DocumentMetadata
from .base import Converter, file_properties

logger = logging.getLogger(__name__)


class HtmlFileConverter(Converter):
    id = "html"
    label = "HTML"
    extensions = ("html", "htm")
    weight = 10

    def process(self, path: Path) -> ConversionResult:
        try:
            html = decode_html(path.read_bytes())
        except OSError as e:
            raise ProcessingFailed(self.id, path.name, f"could not read file: {e}") from e

        try:
            result = convert_html(html, path.name)
        except NoExtractableContent as e:
            raise ProcessingFailed(self.id, path.name, "no readable content found") from e

        if not result.metadata.title:
            result.metadata.title = path.stem
        result.metadata.custom_properties.update(file_properties(path))
        return result

    def extract_metadata(self, path: Path) -> DocumentMetadata:
        try:
            return self.process(path).metadata
        except ProcessingFailed as e:
            logger.warning(f"Metadata extraction failed: {e}")
            return DocumentMetadata(title=path.stem)
