"""BeautifulSoup/readability implementation of the document interface.

This is the only module that touches the HTML parsing libraries. The
extractor works against ``DocumentProtocol`` and ``ElementProtocol``.
"""

from __future__ import annotations

from collections.abc import Iterator

import structlog
from bs4 import BeautifulSoup, NavigableString, PageElement, ParserRejectedMarkup, Tag
from readability import Document as ReadabilityDocument
from readability.readability import Unparseable

from pagescope.errors import ParseError

log = structlog.get_logger()

_BLOCK_TAGS = frozenset({
    "p", "li", "ul", "ol", "dl", "dd", "dt", "pre", "blockquote",
    "table", "tr", "td", "th", "figure", "figcaption", "form",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "div", "section", "article", "main", "header", "footer", "aside", "nav",
})  # fmt: skip
# Skipped by the text path only; links and headings inside them still count
_NOISE_TAGS = frozenset({"script", "style", "noscript", "template", "svg"})


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def _block_text(root: Tag) -> str:
    """Return the text under *root* with a blank line at every block boundary.

    Text nodes are emitted in document order, so text sitting beside nested
    blocks is kept. Paragraph boundaries survive as ``\\n\\n`` for the ranker.
    Noise elements, comments and other non-text strings are skipped.
    """
    blocks: list[str] = []
    current: list[str] = []

    def flush() -> None:
        text = collapse_whitespace("".join(current))
        if text:
            blocks.append(text)
        current.clear()

    # (node, entering) pairs; an exit marker closes the block it was pushed for
    stack: list[tuple[PageElement, bool]] = [(root, True)]
    while stack:
        node, entering = stack.pop()
        if not entering:
            flush()
            continue
        if isinstance(node, Tag):
            if node.name in _NOISE_TAGS:
                continue
            if node.name in _BLOCK_TAGS:
                flush()
                stack.append((node, False))
            stack.extend((child, True) for child in reversed(node.contents))
        elif type(node) is NavigableString:
            current.append(str(node))
    flush()
    return "\n\n".join(blocks)


def _parse(html: str) -> BeautifulSoup:
    # rel/class stay plain strings instead of token lists
    return BeautifulSoup(html, "lxml", multi_valued_attributes=None)


class SoupElement:
    __slots__ = ("_tag",)

    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    @property
    def tag(self) -> str:
        return self._tag.name

    def attr(self, name: str) -> str | None:
        value = self._tag.get(name)
        if value is None:
            return None
        return value if isinstance(value, str) else " ".join(value)

    def text(self) -> str:
        return collapse_whitespace(self._tag.get_text())


class SoupDocument:
    """A parsed HTML page. Raises ``ParseError`` if *html* is not a usable document."""

    def __init__(self, html: str) -> None:
        if not html or not html.strip():
            raise ParseError("Document is empty")
        try:
            soup = _parse(html)
        except ParserRejectedMarkup as exc:
            raise ParseError(f"HTML parser rejected the document: {exc}") from exc
        if soup.find() is None:
            raise ParseError("Document contains no HTML elements")

        self._html = html
        self._soup = soup

    def meta(self, key: str) -> str | None:
        wanted = key.lower()
        for tag in self._soup.find_all("meta"):
            names = {
                str(tag.get(attr, "")).strip().lower() for attr in ("name", "property")
            }
            if wanted not in names:
                continue
            content = str(tag.get("content", "")).strip()
            if content:
                return content
        return None

    def title(self) -> str | None:
        if self._soup.title is None:
            return None
        return collapse_whitespace(self._soup.title.get_text()) or None

    def find_all(self, *tags: str) -> Iterator[SoupElement]:
        for tag in self._soup.find_all(list(tags)):
            yield SoupElement(tag)

    def readable_text(self) -> str:
        try:
            summary = ReadabilityDocument(self._html).summary(html_partial=True)
        except Unparseable:
            log.debug("readability_unparseable", exc_info=True)
            return ""
        return _block_text(_parse(summary))

    def body_text(self) -> str:
        root = self._soup.body or self._soup
        return _block_text(root)
