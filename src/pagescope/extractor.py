"""Content extraction from fetched HTML.

Produces metadata, main readable text, headings and outbound links. Each
metadata field takes the first non-empty candidate:

    title        og:title -> <title>
    description  description -> og:description
    published_at article:published_time
    author       author -> article:author

Main text comes from readability-style extraction, falling back to the whole
body text when that yields nothing.
"""

from __future__ import annotations

from collections.abc import Callable
from urllib.parse import urljoin

import structlog

from pagescope.document import SoupDocument
from pagescope.models.analysis import ExtractedContent, Heading, Link, PageMetadata
from pagescope.protocols import DocumentProtocol

log = structlog.get_logger()

MAX_LINKS = 500
MAX_HEADING_CHARS = 300
MAX_LINK_TEXT_CHARS = 200
HEADING_TAGS = ("h1", "h2", "h3", "h4")

_METADATA_CANDIDATES: dict[str, tuple[str, ...]] = {
    "title": ("og:title",),
    "description": ("description", "og:description"),
    "published_at": ("article:published_time",),
    "author": ("author", "article:author"),
}


def _first_meta(document: DocumentProtocol, keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = document.meta(key)
        if value:
            return value
    return None


def extract_metadata(document: DocumentProtocol) -> PageMetadata:
    fields = {name: _first_meta(document, keys) for name, keys in _METADATA_CANDIDATES.items()}
    if fields["title"] is None:
        fields["title"] = document.title()
    return PageMetadata(**fields)


def extract_main_text(document: DocumentProtocol, *, url: str | None = None) -> str:
    text = document.readable_text().strip()
    if text:
        return text
    log.debug("extraction_fallback_to_body", url=url)
    return document.body_text().strip()


def extract_headings(document: DocumentProtocol) -> tuple[Heading, ...]:
    return tuple(
        Heading(level=element.tag, text=element.text()[:MAX_HEADING_CHARS])
        for element in document.find_all(*HEADING_TAGS)
    )


def _absolute(base_url: str, href: str) -> str:
    try:
        return urljoin(base_url, href)
    except ValueError:
        # Malformed hrefs such as "http://[oops" are kept verbatim
        return href


def extract_links(document: DocumentProtocol, base_url: str) -> tuple[Link, ...]:
    links: list[Link] = []
    for element in document.find_all("a"):
        href = element.attr("href")
        if href is None:
            continue
        rel = (element.attr("rel") or "").lower()
        links.append(
            Link(
                href=_absolute(base_url, href.strip()),
                text=element.text()[:MAX_LINK_TEXT_CHARS],
                rel=rel,
                nofollow="nofollow" in rel.split(),
            )
        )
        if len(links) >= MAX_LINKS:
            break
    return tuple(links)


def extract(
    html: str,
    base_url: str,
    *,
    document_factory: Callable[[str], DocumentProtocol] = SoupDocument,
) -> ExtractedContent:
    """Extract metadata, main text, headings and links from *html*.

    Relative link targets are resolved against *base_url*. Raises
    ``ParseError`` when *html* cannot be parsed into a document.
    """
    document = document_factory(html)
    return ExtractedContent(
        metadata=extract_metadata(document),
        main_text=extract_main_text(document, url=base_url),
        headings=extract_headings(document),
        links=extract_links(document, base_url),
    )
