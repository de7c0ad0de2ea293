"""Pandoc-backed converter for office document formats."""

import json
import logging
import tempfile
from pathlib import Path
from typing import Any

from ..errors import ProcessingFailed
from ..models import ConversionResult, DocumentMetadata, _parse_datetime
from .base import file_properties, normalize_extension
from .external import ExternalToolConverter

logger = logging.getLogger(__name__)

FORMAT_MAP = {"docx": "docx", "pdf": "pdf", "odt": "odt", "rtf": "rtf"}

STANDARD_FIELDS = {"title", "author", "date", "lang", "language"}


def _flatten(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(_flatten(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def normalize_pandoc_metadata(meta: dict[str, Any], path: Path) -> DocumentMetadata:
    """Map pandoc's $meta-json$ output onto DocumentMetadata."""
    props = file_properties(path)
    for key, value in meta.items():
        if key not in STANDARD_FIELDS and value not in (None, "", []):
            props[key] = _flatten(value)

    author = meta.get("author")
    return DocumentMetadata(
        title=_flatten(meta["title"]) if meta.get("title") else path.stem,
        author=_flatten(author) if author else None,
        created_date=_parse_datetime(meta.get("date")),
        language=meta.get("lang") or meta.get("language") or None,
        custom_properties=props,
    )


class PandocConverter(ExternalToolConverter):
    id = "pandoc"
    label = "Pandoc"
    extensions = ("docx", "pdf", "odt", "rtf")
    weight = 0

    def _format(self, path: Path) -> str:
        ext = normalize_extension(path.suffix)
        return FORMAT_MAP.get(ext, ext)

    def process(self, path: Path) -> ConversionResult:
        logger.info(f"Converting {path.name} with pandoc")
        markdown = self.run(
            ["-f", self._format(path), "-t", "markdown", "--wrap=none", str(path)], path
        )
        return ConversionResult(markdown=markdown.strip(), metadata=self.extract_metadata(path))

    def extract_metadata(self, path: Path) -> DocumentMetadata:
        with tempfile.TemporaryDirectory() as tmp:
            template = Path(tmp) / "meta.tpl"
            template.write_text("$meta-json$\n", encoding="utf-8")
            try:
                out = self.run(
                    ["-f", self._format(path), "-t", "plain", f"--template={template}", str(path)],
                    path,
                    timeout=self.metadata_timeout,
                )
                meta = json.loads(out or "{}")
            except (ProcessingFailed, json.JSONDecodeError) as e:
                logger.warning(f"Pandoc metadata extraction failed for {path.name}: {e}")
                return DocumentMetadata(title=path.stem, custom_properties=file_properties(path))

        if not isinstance(meta, dict):
            meta = {}
        return normalize_pandoc_metadata(meta, path)
