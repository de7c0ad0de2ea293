"""Markdown file converter with frontmatter extraction."""

import logging
import re
from pathlib import Path
from typing import Any

import yaml

from ..errors import ProcessingFailed
from ..models import ConversionResult, DocumentMetadata, Heading, _parse_datetime, word_count
from .base import Converter, file_properties
from .text import decode_text, normalize_line_endings

logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r"^---\s*\n(.+?)\n---\s*\n?", re.DOTALL)
HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")

STANDARD_FIELDS = {"title", "author", "authors", "date", "lang", "language"}


def _clean_value(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1]
    return value


def parse_simple_yaml(text: str) -> dict[str, Any]:
    """Line-based ``key: value`` / ``- item`` parser for broken frontmatter."""
    data: dict[str, Any] = {}
    current = None
    for line in text.split("\n"):
        if not line.strip():
            continue
        item = re.match(r"^\s+-\s*(.+)$", line)
        if item and current is not None:
            if not isinstance(data[current], list):
                data[current] = [data[current]]
            data[current].append(_clean_value(item.group(1)))
            continue
        pair = re.match(r"^([a-zA-Z_][a-zA-Z0-9_-]*):\s*(.*)$", line)
        if pair:
            current = pair.group(1)
            value = _clean_value(pair.group(2))
            data[current] = value if value else []
    return data


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Return (frontmatter, body). Frontmatter is {} when absent."""
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    raw = match.group(1)
    body = text[match.end():]
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        logger.debug(f"Frontmatter is not valid YAML ({e}), using simple parser")
        data = None
    if not isinstance(data, dict):
        data = parse_simple_yaml(raw)
    return {str(k): v for k, v in data.items()}, body


def extract_headings(body: str) -> list[Heading]:
    headings = []
    in_fence = False
    for line in body.split("\n"):
        if line.lstrip().startswith("```"):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        m = HEADING_RE.match(line)
        if m:
            headings.append(Heading(len(m.group(1)), m.group(2).strip().rstrip("#").strip()))
    return headings


def _join(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def build_metadata(frontmatter: dict[str, Any], body: str, path: Path) -> DocumentMetadata:
    headings = extract_headings(body)

    title = frontmatter.get("title")
    if not title:
        h1 = next((h.text for h in headings if h.level == 1), None)
        title = h1 or (headings[0].text if headings else None)

    author = frontmatter.get("author") or frontmatter.get("authors")
    language = frontmatter.get("lang") or frontmatter.get("language")

    props = file_properties(path)
    props["word_count"] = str(word_count(body))
    props["character_count"] = str(len(body))
    props["has_frontmatter"] = "true" if frontmatter else "false"
    for key, value in frontmatter.items():
        if key not in STANDARD_FIELDS and value is not None:
            props[f"frontmatter_{key}"] = _join(value)

    return DocumentMetadata(
        title=str(title) if title else None,
        author=_join(author) if author else None,
        created_date=_parse_datetime(frontmatter.get("date")),
        language=str(language) if language else None,
        headings=headings,
        custom_properties=props,
    )


class MarkdownConverter(Converter):
    id = "markdown"
    label = "Markdown"
    extensions = ("md", "markdown")
    weight = 5

    def _read(self, path: Path) -> str:
        try:
            return normalize_line_endings(decode_text(path.read_bytes()))
        except OSError as e:
            raise ProcessingFailed(self.id, path.name, f"could not read file: {e}") from e

    def process(self, path: Path) -> ConversionResult:
        logger.info(f"Processing markdown file {path.name}")
        frontmatter, body = split_frontmatter(self._read(path))
        return ConversionResult(markdown=body, metadata=build_metadata(frontmatter, body, path))

    def extract_metadata(self, path: Path) -> DocumentMetadata:
        try:
            frontmatter, body = split_frontmatter(self._read(path))
        except ProcessingFailed as e:
            logger.warning(f"Metadata extraction failed: {e}")
            return DocumentMetadata()
        return build_metadata(frontmatter, body, path)
