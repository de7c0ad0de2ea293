"""Converter interface shared by every document format."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from ..models import ConversionResult, DocumentMetadata

logger = logging.getLogger(__name__)


def normalize_extension(extension: str) -> str:
    return extension.lower().lstrip(".")


class Converter(ABC):
    """Turns a file into Markdown plus metadata.

    Subclasses declare the extensions they handle and a weight; when several
    converters claim an extension the lowest weight whose requirements are
    met wins. Converters never truncate their output.
    """

    id: str = ""
    label: str = ""
    extensions: tuple[str, ...] = ()
    weight: int = 0

    def supports(self, extension: str) -> bool:
        return normalize_extension(extension) in self.extensions

    def check_requirements(self) -> bool:
        return True

    def requirement_errors(self) -> list[str]:
        return []

    @abstractmethod
    def process(self, path: Path) -> ConversionResult:
        """Convert the file. Raises ProcessingFailed on converter errors."""

    def extract_metadata(self, path: Path) -> DocumentMetadata:
        """Lighter metadata-only pass for previews. Never raises."""
        try:
            return self.process(path).metadata
        except Exception as e:
            logger.warning(f"Metadata extraction failed for {path.name} ({self.id}): {e}")
            return DocumentMetadata()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r} weight={self.weight}>"


def file_properties(path: Path) -> dict[str, str]:
    try:
        return {"file_size": str(path.stat().st_size)}
    except OSError:
        return {}


def file_modified(path: Path) -> datetime | None:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime, timezone.utc)
    except OSError:
        return None
