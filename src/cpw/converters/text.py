"""Plain text converter."""

import logging
import re
from pathlib import Path

from bs4 import UnicodeDammit

from ..errors import ProcessingFailed
from ..models import ConversionResult, DocumentMetadata, word_count
from .base import Converter, file_modified, file_properties

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200

LANGUAGE_PATTERNS = {
    "en": [r"\bthe\b", r"\band\b", r"\bof\b"],
    "de": [r"\bund\b", r"\bder\b", r"\bdie\b"],
    "fr": [r"\bet\b", r"\ble\b", r"\bla\b"],
    "es": [r"\by\b", r"\bel\b", r"\bla\b"],
    "nl": [r"\ben\b", r"\bde\b", r"\bhet\b"],
}
MIN_LANGUAGE_SCORE = 5


def decode_text(data: bytes) -> str:
    """Decode bytes to str, guessing among utf-8, cp1252 and latin-1."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        pass
    dammit = UnicodeDammit(data, ["utf-8", "windows-1252", "latin-1"])
    if dammit.unicode_markup is not None:
        logger.debug(f"Decoded text as {dammit.original_encoding}")
        return dammit.unicode_markup
    return data.decode("utf-8", errors="ignore")


def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def title_from_content(text: str) -> str | None:
    for line in text.split("\n"):
        line = line.strip()
        if line:
            if len(line) > MAX_TITLE_LENGTH:
                return line[: MAX_TITLE_LENGTH - 3] + "..."
            return line
    return None


def detect_language(text: str) -> str | None:
    """Crude keyword scoring on the first 1000 characters."""
    sample = text[:1000]
    scores = {
        lang: sum(len(re.findall(p, sample, re.IGNORECASE)) for p in patterns)
        for lang, patterns in LANGUAGE_PATTERNS.items()
    }
    best = max(scores, key=scores.get)
    return best if scores[best] >= MIN_LANGUAGE_SCORE else None


class PlainTextConverter(Converter):
    id = "plain_text"
    label = "Plain text"
    extensions = ("txt", "text", "log", "csv")
    weight = 10

    def _read(self, path: Path) -> str:
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ProcessingFailed(self.id, path.name, f"could not read file: {e}") from e
        return normalize_line_endings(decode_text(data))

    def process(self, path: Path) -> ConversionResult:
        logger.info(f"Processing plain text file {path.name}")
        text = self._read(path)
        return ConversionResult(markdown=text, metadata=self._metadata(path, text))

    def extract_metadata(self, path: Path) -> DocumentMetadata:
        try:
            text = self._read(path)
        except ProcessingFailed as e:
            logger.warning(f"Metadata extraction failed: {e}")
            return DocumentMetadata()
        return self._metadata(path, text)

    def _metadata(self, path: Path, text: str) -> DocumentMetadata:
        props = file_properties(path)
        props.update({
            "word_count": str(word_count(text)),
            "character_count": str(len(text)),
            "line_count": str(text.count("\n") + 1 if text else 0),
        })
        return DocumentMetadata(
            title=title_from_content(text),
            created_date=file_modified(path),
            language=detect_language(text),
            custom_properties=props,
        )
