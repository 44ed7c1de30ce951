"""Protocol interfaces for swappable components.

The pipeline and AppState reference these protocols, not the concrete
implementations. This allows:
- Tests to use lightweight fakes
- The HTML parsing library to be swapped without touching the extractor
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from pagescope.models.analysis import FetchResponse, PageAnalysis, URLTarget


class CacheProtocol(Protocol):
    """Interface for the analysis cache."""

    async def get(self, key: str) -> PageAnalysis | None: ...

    async def put(self, key: str, value: PageAnalysis) -> None: ...

    async def cleanup_expired(self) -> int: ...


class FetcherProtocol(Protocol):
    """Interface for the bounded HTTP fetcher."""

    async def fetch(
        self,
        target: URLTarget,
        *,
        accept: str = ...,
        max_bytes: int | None = None,
        timeout_seconds: float | None = None,
    ) -> FetchResponse: ...


class RobotsPolicyProtocol(Protocol):
    """Interface for robots.txt resolution. Never raises."""

    async def is_allowed(self, target: URLTarget, user_agent: str | None = None) -> bool: ...


class ElementProtocol(Protocol):
    """The slice of an HTML element the extractor relies on."""

    @property
    def tag(self) -> str: ...

    def attr(self, name: str) -> str | None: ...

    def text(self) -> str: ...


class DocumentProtocol(Protocol):
    """The slice of a parsed HTML document the extractor relies on."""

    def meta(self, key: str) -> str | None:
        """Content of the first ``<meta>`` whose name or property equals *key*."""
        ...

    def title(self) -> str | None: ...

    def find_all(self, *tags: str) -> Iterator[ElementProtocol]:
        """Elements with any of *tags*, in document order."""
        ...

    def readable_text(self) -> str:
        """Main article text with boilerplate removed; empty if none found."""
        ...

    def body_text(self) -> str:
        """Text of the whole page body."""
        ...
