"""Render cleaned HTML as Markdown.

The parsed document is first copied into a tree of immutable ``Node`` values;
rendering is a pure recursive function over that tree.
"""

import re
from dataclasses import dataclass

from bs4 import NavigableString, Tag
from bs4.element import PreformattedString

TEXT = "#text"

BLOCK_TAGS = {
    "h1", "h2", "h3", "h4", "h5", "h6", "p", "div", "ul", "ol", "pre",
    "blockquote", "table", "dl", "address", "figure", "hr", "article",
    "section", "main", "header", "footer", "aside",
}
SECTION_TAGS = {"article", "section", "main", "header", "footer", "aside", "body", "html"}
TABLE_PARTS = {"thead", "tbody", "tfoot", "tr", "th", "td"}


@dataclass(frozen=True)
class Node:
    tag: str
    attrs: tuple[tuple[str, str], ...] = ()
    children: tuple["Node", ...] = ()
    text: str = ""

    def attr(self, name: str, default: str = "") -> str:
        for key, value in self.attrs:
            if key == name:
                return value
        return default

    def text_content(self) -> str:
        if self.tag == TEXT:
            return self.text
        return "".join(c.text_content() for c in self.children)

    def find_all(self, tag: str) -> list["Node"]:
        """Matching descendants, without descending into matches."""
        found = []
        for child in self.children:
            if child.tag == tag:
                found.append(child)
            else:
                found.extend(child.find_all(tag))
        return found


def build_tree(element) -> Node:
    """Copy a BeautifulSoup element into an immutable Node tree."""
    if isinstance(element, NavigableString):
        return Node(TEXT, text=str(element))
    attrs = tuple(
        (k, " ".join(v) if isinstance(v, list) else str(v))
        for k, v in element.attrs.items()
    )
    children = tuple(
        build_tree(c)
        for c in element.children
        if isinstance(c, Tag) or (isinstance(c, NavigableString) and not isinstance(c, PreformattedString))
    )
    return Node((element.name or "").lower(), attrs, children)


def html_to_markdown(element) -> str:
    """Render a BeautifulSoup element (or Node) to normalized Markdown."""
    node = element if isinstance(element, Node) else build_tree(element)
    return normalize_whitespace(render_node(node))


def normalize_whitespace(markdown: str) -> str:
    """Right-trim lines, collapse 3+ newlines to 2, trim the document."""
    markdown = markdown.replace("\r\n", "\n").replace("\r", "\n")
    markdown = "\n".join(line.rstrip() for line in markdown.split("\n"))
    markdown = re.sub(r"\n{3,}", "\n\n", markdown)
    return markdown.strip()


def _render_children(node: Node, list_level: int) -> str:
    out = ""
    for child in node.children:
        piece = render_node(child, list_level)
        if not piece:
            continue
        if child.tag == TEXT and (not out or out.endswith("\n")):
            piece = piece.lstrip()
        elif child.tag in BLOCK_TAGS and out and not out.endswith("\n"):
            if not (list_level and child.tag in ("ul", "ol")):
                out += "\n\n"
        out += piece
    return out


def render_node(node: Node, list_level: int = 0) -> str:
    if node.tag == TEXT:
        return re.sub(r"\s+", " ", node.text)

    tag = node.tag

    # Elements that handle their own children
    if tag in ("ul", "ol"):
        return _render_list(node, list_level)
    if tag == "table":
        return render_table(node)
    if tag in TABLE_PARTS:
        return ""
    if tag == "pre":
        code = node.text_content().strip("\n")
        return f"```\n{code}\n```\n\n" if code.strip() else ""
    if tag == "img":
        alt = node.attr("alt").strip()
        src = node.attr("src")
        if src and len(alt) > 3:
            return f"![{alt}]({src})"
        return ""
    if tag == "br":
        return "\n"
    if tag == "hr":
        return "\n---\n\n"
    if tag == "dl":
        return _render_definition_list(node, list_level)

    content = _render_children(node, list_level).strip()
    if not content:
        return ""

    if re.fullmatch(r"h[1-6]", tag):
        return f"{'#' * int(tag[1])} {content}\n\n"
    if tag == "p":
        return f"{content}\n\n"
    if tag == "div":
        return f"{content}\n"
    if tag in ("strong", "b"):
        return f"**{content}**"
    if tag in ("em", "i"):
        return f"*{content}*"
    if tag in ("s", "strike", "del"):
        return f"~~{content}~~"
    if tag == "a":
        href = node.attr("href").strip()
        if href and href != "#" and not href.lower().startswith("javascript:"):
            return f"[{content}]({href})"
        return content
    if tag == "code":
        return f"`{content}`"
    if tag == "blockquote":
        return "\n".join(f"> {line}" for line in content.split("\n")) + "\n\n"
    if tag == "address":
        return f"*{content}*\n\n"
    if tag == "figure":
        return f"{content}\n"
    if tag == "figcaption":
        return f"*{content}*\n"
    if tag in SECTION_TAGS:
        return f"{content}\n\n"
    return content


def _render_list(node: Node, list_level: int) -> str:
    indent = "  " * list_level
    lines = []
    counter = 1
    for child in node.children:
        if child.tag != "li":
            continue
        item = _render_children(child, list_level + 1).strip()
        if not item:
            continue
        marker = f"{counter}." if node.tag == "ol" else "-"
        lines.append(f"{indent}{marker} {item}")
        counter += 1
    if not lines:
        return ""
    body = "\n".join(lines) + "\n"
    # Nested lists start on their own line inside the parent item
    return ("\n" + body) if list_level else (body + "\n")


def _render_definition_list(node: Node, list_level: int) -> str:
    out = ""
    for child in node.children:
        text = _render_children(child, list_level).strip() if child.tag in ("dt", "dd") else ""
        if not text:
            continue
        if child.tag == "dt":
            out += f"**{text}**\n"
        else:
            out += f": {text}\n\n"
    return out


def _cell_text(cell: Node) -> str:
    text = re.sub(r"\s+", " ", cell.text_content()).strip()
    return text.replace("|", "\\|")


def render_table(table: Node) -> str:
    """Pipe table; first row with th cells is the header, else the first row."""
    header: list[str] | None = None
    rows: list[list[str]] = []
    max_cols = 0

    for tr in table.find_all("tr"):
        cells = []
        is_header = False
        for cell in tr.children:
            if cell.tag in ("th", "td"):
                is_header = is_header or cell.tag == "th"
                cells.append(_cell_text(cell))
        if not cells:
            continue
        if header is None and is_header:
            header = cells
        else:
            rows.append(cells)
        max_cols = max(max_cols, len(cells))

    if header is None:
        if not rows:
            return ""
        header = rows.pop(0)

    def _pad(row: list[str]) -> list[str]:
        return row + [""] * (max_cols - len(row))

    lines = ["| " + " | ".join(_pad(header)) + " |", "|" + " --- |" * max_cols]
    lines.extend("| " + " | ".join(_pad(row)) + " |" for row in rows)
    return "\n".join(lines) + "\n\n"
