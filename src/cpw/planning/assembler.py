"""Merge processed sources into bounded text blocks for prompting."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..config import get_section
from ..models import ContextItem, ProcessedContent

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n[content truncated]"
BLOCK_SEPARATOR = "\n\n---\n\n"

_BASE64_IMAGE_RE = re.compile(r"!\[[^\]]*\]\(\s*data:[^)]*\)")
_DATA_URI_RE = re.compile(r"data:[\w/+.-]+;base64,[A-Za-z0-9+/=]+")
_HTML_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_INVISIBLE_RE = re.compile("[\u200b-\u200f\u2060\ufeff\u00ad\u202a-\u202e\u2066-\u2069]")


def clean_markdown(text: str) -> str:
    """Drop content that costs tokens without carrying meaning."""
    text = _BASE64_IMAGE_RE.sub("", text)
    text = _DATA_URI_RE.sub("", text)
    text = _HTML_COMMENT_RE.sub("", text)
    text = _INVISIBLE_RE.sub("", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r" *\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def truncate(text: str, limit: int) -> str:
    """Cut text to ``limit`` characters plus a marker, preferring a word boundary."""
    if len(text) <= limit:
        return text
    cut = text[:limit]
    boundary = max(cut.rfind(" "), cut.rfind("\n"))
    if boundary >= int(limit * 0.8):
        cut = cut[:boundary]
    return cut.rstrip() + TRUNCATION_MARKER


@dataclass
class AssembledContent:
    documents: list[str] = field(default_factory=list)
    webpages: list[str] = field(default_factory=list)
    source_ids: list[str] = field(default_factory=list)
    document_limit: int = 60000
    webpage_limit: int = 30000

    @property
    def is_empty(self) -> bool:
        return not self.documents and not self.webpages

    def documents_text(self) -> str:
        return truncate(BLOCK_SEPARATOR.join(self.documents), self.document_limit)

    def webpages_text(self) -> str:
        return truncate(BLOCK_SEPARATOR.join(self.webpages), self.webpage_limit)

    def to_prompt(self) -> str:
        parts = []
        if self.documents:
            parts.append(self.documents_text())
        if self.webpages:
            parts.append(self.webpages_text())
        return BLOCK_SEPARATOR.join(parts)


def assemble(sources: Iterable[ProcessedContent], config: dict[str, Any] | None = None) -> AssembledContent:
    cfg = get_section(config or {}, "assembler")
    out = AssembledContent(
        document_limit=cfg["total_document_chars"],
        webpage_limit=cfg["total_webpage_chars"],
    )
    for source in sources:
        body = clean_markdown(source.markdown_content)
        if source.is_webpage:
            body = truncate(body, cfg["webpage_chars"])
            out.webpages.append(f"## Webpage: {source.source_identifier}\n\n{body}")
        else:
            body = truncate(body, cfg["document_chars"])
            out.documents.append(f"## Document: {source.display_name}\n\n{body}")
        out.source_ids.append(source.id)

    logger.debug(f"Assembled {len(out.documents)} documents and {len(out.webpages)} webpages")
    return out


def format_contexts(contexts: Iterable[ContextItem]) -> str:
    """Enabled context items, highest priority first."""
    items = sorted((c for c in contexts if c.enabled), key=lambda c: c.priority, reverse=True)
    return "\n".join(c.format_for_prompt() for c in items).strip()
