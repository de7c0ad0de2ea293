"""Webpage normalization: fetch, clean, extract main content, render Markdown."""

import codecs
import logging
import re
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Comment

from ..errors import CPWError, FetchFailed, InvalidSource, NoExtractableContent
from ..models import ConversionResult, DocumentMetadata, Heading, ProcessedContent, word_count
from .fetch import Fetcher, HttpFetcher
from .markdown import html_to_markdown

logger = logging.getLogger(__name__)

PROCESSOR_ID = "webpage"

REMOVE_ELEMENTS = [
    "script", "style", "nav", "header", "footer", "aside", "form", "iframe",
    "noscript", "svg", "canvas", "button", "input", "select", "textarea",
    "video", "audio", "embed", "object", "map", "area", "template", "dialog",
    "menu", "menuitem",
]

REMOVE_ATTRIBUTES = {
    "class", "id", "style", "onclick", "onload", "onerror", "onmouseover",
    "onmouseout", "onfocus", "onblur", "onchange", "onsubmit", "role",
    "aria-label", "aria-labelledby", "aria-describedby", "aria-hidden",
    "tabindex",
}

VOID_ELEMENTS = {
    "br", "hr", "img", "input", "meta", "link", "area", "base", "col",
    "embed", "source", "track", "wbr",
}
IMPORTANT_TAGS = ["img", "table"]
MAX_EMPTY_PASSES = 10

# Ordered hints for the main content region
CONTENT_SELECTORS = [
    "article",
    "main",
    '[role="main"]',
    '[class*="content"]',
    '[class*="post"]',
    '[class*="entry"]',
    '[class*="article"]',
    "#content",
    "#main",
]

MAX_HEADINGS = 20


def is_valid_url(url: str) -> bool:
    """http(s) URL with a host of at least three characters."""
    if not url or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
        host = parsed.hostname or ""
        parsed.port  # raises ValueError for a non-numeric or out-of-range port
    except ValueError:
        return False
    if parsed.scheme.lower() not in ("http", "https"):
        return False
    return len(host) >= 3


def detect_encoding(body: bytes, content_type: str = "") -> str:
    """Pick a charset: header, meta charset, http-equiv meta, XML declaration, UTF-8."""
    m = re.search(r"charset=([^\s;]+)", content_type or "", re.I)
    if m:
        return m.group(1).strip("\"'").upper()

    head = body[:4096].decode("ascii", errors="ignore")
    metas = re.findall(r"<meta\b[^>]*>", head, re.I)

    for meta in metas:
        if "http-equiv" in meta.lower():
            continue
        m = re.search(r"\bcharset\s*=\s*[\"']?([^\"'\s>/;]+)", meta, re.I)
        if m:
            return m.group(1).upper()

    for meta in metas:
        if re.search(r"http-equiv\s*=\s*[\"']?content-type", meta, re.I):
            m = re.search(r"content\s*=\s*[\"'][^\"']*charset=([^\"'\s;]+)", meta, re.I)
            if m:
                return m.group(1).upper()

    m = re.search(r"<\?xml[^>]+encoding=[\"']([^\"']+)", head, re.I)
    if m:
        return m.group(1).upper()

    return "UTF-8"


def decode_html(body: bytes, content_type: str = "") -> str:
    """Decode to text using the detected charset; never fails."""
    encoding = detect_encoding(body, content_type)
    try:
        codecs.lookup(encoding)
        return body.decode(encoding)
    except (LookupError, UnicodeDecodeError) as e:
        logger.debug(f"Could not decode as {encoding} ({e}); keeping raw UTF-8")
        return body.decode("utf-8", errors="replace")


def title_from_url(url: str) -> str:
    parsed = urlparse(url)
    host = parsed.hostname or ""
    path = parsed.path.strip("/")
    if path:
        path = re.sub(r"[/\-_]", " ", path).title()
        return f"{path} - {host}"
    return host


def _meta_content(soup: BeautifulSoup, *names: str) -> str | None:
    for name in names:
        tag = soup.find("meta", attrs={"name": name}) or soup.find("meta", attrs={"property": name})
        if tag and tag.get("content", "").strip():
            return tag["content"].strip()
    return None


def extract_metadata(soup: BeautifulSoup, source: str) -> DocumentMetadata:
    """Page metadata, read before any cleaning happens."""
    title = None
    if soup.title and soup.title.get_text(strip=True):
        title = soup.title.get_text(strip=True)
    title = title or _meta_content(soup, "og:title")
    if not title and is_valid_url(source):
        title = title_from_url(source)

    author = _meta_content(soup, "author")
    description = _meta_content(soup, "description", "og:description")

    language = None
    if soup.html and soup.html.get("lang"):
        language = soup.html["lang"]

    headings: list[Heading] = []
    for level in (1, 2, 3):
        for h in soup.find_all(f"h{level}"):
            text = h.get_text(" ", strip=True)
            if text and len(text) < 200:
                headings.append(Heading(level, text))
            if len(headings) >= MAX_HEADINGS:
                break
        if len(headings) >= MAX_HEADINGS:
            break

    props = {}
    if is_valid_url(source):
        props["source_url"] = source
    if description:
        props["description"] = description
    if author:
        props["author"] = author

    return DocumentMetadata(
        title=title,
        author=author,
        language=language,
        headings=headings,
        custom_properties=props,
    )


def select_main_region(soup: BeautifulSoup):
    for selector in CONTENT_SELECTORS:
        found = soup.select_one(selector)
        if found is not None:
            return found
    return soup.body or soup


def _strip_attributes(region) -> None:
    for tag in [region, *region.find_all(True)]:
        tag.attrs = {
            k: v for k, v in tag.attrs.items()
            if k.lower() not in REMOVE_ATTRIBUTES and not k.lower().startswith("data-")
        }


def _remove_empty_elements(region) -> None:
    for _ in range(MAX_EMPTY_PASSES):
        removed = False
        for tag in region.find_all(True):
            if tag.decomposed or tag.name in VOID_ELEMENTS or tag.name in IMPORTANT_TAGS:
                continue
            if tag.find_parent("table") is not None:
                continue
            if tag.get_text(strip=True) or tag.find(IMPORTANT_TAGS):
                continue
            tag.decompose()
            removed = True
        if not removed:
            break


def clean_html(soup: BeautifulSoup):
    """Strip non-content markup and return the main content region.

    The region is picked before attributes are stripped so class/id hints
    can still match.
    """
    for tag in soup.find_all(REMOVE_ELEMENTS):
        if not tag.decomposed:
            tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    region = select_main_region(soup)
    _strip_attributes(region)
    _remove_empty_elements(region)
    return region


def convert_html(html: str, source: str) -> ConversionResult:
    """Clean an HTML document and render it as Markdown plus metadata."""
    soup = BeautifulSoup(html, "lxml")
    metadata = extract_metadata(soup, source)
    region = clean_html(soup)
    markdown = html_to_markdown(region)
    if not markdown:
        raise NoExtractableContent(source)
    metadata.custom_properties["word_count"] = str(word_count(markdown))
    metadata.custom_properties["character_count"] = str(len(markdown))
    return ConversionResult(markdown=markdown, metadata=metadata)


class WebpageProcessor:
    """Turns webpages into ProcessedContent."""

    def __init__(self, fetcher: Fetcher | None = None):
        self.fetcher = fetcher or HttpFetcher()

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "WebpageProcessor":
        return cls(HttpFetcher.from_config(config))

    is_valid_url = staticmethod(is_valid_url)

    def process_url(self, url: str) -> ProcessedContent:
        url = (url or "").strip()
        if not is_valid_url(url):
            raise InvalidSource(url)

        logger.info(f"Processing web page: {url}")
        response = self.fetcher(url)

        if response.status_code >= 400:
            raise FetchFailed(url, f"HTTP error {response.status_code}", response.status_code)
        if not response.body:
            raise FetchFailed(url, "Empty response", response.status_code)

        return self.process_html(response.body, url, response.header("content-type"))

    def process_html(self, html: bytes | str, source: str, content_type: str = "") -> ProcessedContent:
        if isinstance(html, bytes):
            html = decode_html(html, content_type)

        result = convert_html(html, source)
        if not result.metadata.title:
            result.metadata.title = source
        logger.info(f"Successfully processed web page: {source} ({len(result.markdown)} characters)")

        return ProcessedContent(
            source_identifier=source,
            markdown_content=result.markdown,
            processor_id=PROCESSOR_ID,
            metadata=result.metadata,
            source_kind="webpage",
            title=result.metadata.title,
        )

    def process_urls(self, urls: list[str]) -> list[ProcessedContent]:
        """Process URLs one at a time; failures are logged and skipped."""
        pages = []
        for url in urls:
            try:
                pages.append(self.process_url(url))
            except CPWError as e:
                logger.warning(f"Skipping failed URL {url}: {e}")
        return pages
