from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class URLTarget(BaseModel):
    """Parsed absolute http(s) URL, validated before any network access."""

    model_config = ConfigDict(frozen=True)

    scheme: str  # "http" or "https", lower-cased
    host: str  # Lower-cased, brackets stripped for IPv6 literals
    path: str = "/"
    port: int | None = None
    url: str  # Normalized URL string, used as the cache key

    @property
    def origin(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port is not None:
            host = f"{host}:{self.port}"
        return f"{self.scheme}://{host}"


class FetchResponse(BaseModel):
    """Result of one bounded page retrieval."""

    model_config = ConfigDict(frozen=True)

    status: int
    headers: dict[str, str]  # Lower-cased header names
    final_url: str
    body: str
    bytes_read: int


class Heading(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: str  # Tag name: "h1".."h4"
    text: str


class Link(BaseModel):
    model_config = ConfigDict(frozen=True)

    href: str  # Absolute URL
    text: str
    rel: str = ""
    nofollow: bool = False


class Passage(BaseModel):
    model_config = ConfigDict(frozen=True)

    snippet: str = Field(max_length=600)
    score: int = Field(ge=1)


class PageMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str | None = None
    description: str | None = None
    published_at: str | None = None
    author: str | None = None


class ExtractedContent(BaseModel):
    """Everything the extractor derives from one HTML document."""

    model_config = ConfigDict(frozen=True)

    metadata: PageMetadata
    main_text: str
    headings: tuple[Heading, ...] = ()
    links: tuple[Link, ...] = ()


class PageAnalysis(BaseModel):
    """Final result of fetch_and_analyze. Immutable; safe to share with the cache."""

    model_config = ConfigDict(frozen=True)

    url: str
    final_url: str
    title: str | None = None
    description: str | None = None
    published_at: str | None = None
    author: str | None = None
    word_count: int = 0
    headings: tuple[Heading, ...] = ()
    links: tuple[Link, ...] = ()
    excerpt: str = ""
    main_text: str = ""
    relevant_passages: tuple[Passage, ...] = ()
