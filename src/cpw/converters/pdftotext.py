"""PDF text extraction through poppler's pdftotext/pdfinfo."""

import logging
import re
import subprocess
from datetime import datetime
from pathlib import Path

from ..errors import ProcessingFailed
from ..models import ConversionResult, DocumentMetadata
from .base import file_properties
from .external import ExternalToolConverter, Runner

logger = logging.getLogger(__name__)


def text_to_markdown(text: str, filename: str) -> str:
    """Give pdftotext output some structure.

    Short all-caps lines after a blank line become ``##`` headings, other short
    isolated lines become ``###``. The file name becomes the document title.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n").strip()
    if not text:
        return ""
    text = re.sub(r"\n{3,}", "\n\n", text)

    lines = text.split("\n")
    formatted = []
    prev_blank = True
    for i, line in enumerate(lines):
        stripped = line.strip()
        if not stripped:
            formatted.append("")
            prev_blank = True
            continue

        is_short = len(stripped) < 80
        is_caps = stripped == stripped.upper() and bool(re.search(r"[A-Z]", stripped))
        next_blank = i + 1 >= len(lines) or not lines[i + 1].strip()

        if prev_blank and is_short and (is_caps or next_blank) and not re.match(r"^[\d.\-*]", stripped):
            if is_caps and len(stripped) < 50:
                formatted.append("## " + stripped.lower().title())
            else:
                formatted.append("### " + stripped)
        else:
            formatted.append(stripped)
        prev_blank = False

    title = re.sub(r"[_\-]", " ", Path(filename).stem).title()
    return f"# {title}\n\n" + "\n".join(formatted)


def parse_pdfinfo(output: str) -> dict[str, str]:
    info = {}
    for line in output.splitlines():
        m = re.match(r"^([^:]+):\s*(.*)$", line)
        if m and m.group(2).strip():
            key = m.group(1).strip().lower().replace(" ", "_")
            info[key] = m.group(2).strip()
    return info


def _parse_pdf_date(value: str) -> datetime | None:
    value = re.sub(r"\s+", " ", value.strip())
    for fmt in ("%a %b %d %H:%M:%S %Y %Z", "%a %b %d %H:%M:%S %Y"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


class PdfToTextConverter(ExternalToolConverter):
    id = "pdftotext"
    label = "pdftotext (Poppler)"
    extensions = ("pdf",)
    weight = -5
    version_args = ["-v"]

    def __init__(
        self,
        executable: str = "pdftotext",
        pdfinfo: str = "pdfinfo",
        runner: Runner | None = None,
        timeout: float = 120,
        metadata_timeout: float = 30,
    ):
        super().__init__(executable, runner=runner, timeout=timeout, metadata_timeout=metadata_timeout)
        self.pdfinfo = pdfinfo

    def _probe(self) -> bool:
        # Older poppler builds print the version to stderr with a non-zero exit
        try:
            result = self.runner(self.executable, self.version_args, 10)
        except (OSError, subprocess.SubprocessError):
            return False
        return result.exit_code == 0 or "pdftotext" in result.stderr

    def process(self, path: Path) -> ConversionResult:
        logger.info(f"Extracting PDF text from {path.name} with pdftotext")
        text = self.run(["-layout", "-enc", "UTF-8", str(path), "-"], path)
        markdown = text_to_markdown(text, path.name)
        if not markdown:
            raise ProcessingFailed(self.id, path.name, "no text could be extracted")
        return ConversionResult(markdown=markdown, metadata=self.extract_metadata(path))

    def extract_metadata(self, path: Path) -> DocumentMetadata:
        fallback = DocumentMetadata(title=path.stem, custom_properties=file_properties(path))
        try:
            result = self.runner(self.pdfinfo, [str(path)], self.metadata_timeout)
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"pdfinfo unavailable for {path.name}: {e}")
            return fallback
        if result.exit_code != 0:
            return fallback

        info = parse_pdfinfo(result.stdout)
        props = file_properties(path)
        for key in ("pages", "pdf_version", "producer", "creator"):
            if info.get(key):
                props[key] = info[key]

        return DocumentMetadata(
            title=info.get("title") or path.stem,
            author=info.get("author"),
            created_date=_parse_pdf_date(info["creationdate"]) if info.get("creationdate") else None,
            custom_properties=props,
        )
