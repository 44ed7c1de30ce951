"""Application state container.

AppState is created once at server startup (inside the FastMCP lifespan context
manager) and injected into every tool handler via the MCP Context object. It
owns the shared HTTP client and the analysis cache for the process lifetime.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from pagescope.config import Settings
    from pagescope.pipeline import PageAnalyzer
    from pagescope.protocols import CacheProtocol, FetcherProtocol, RobotsPolicyProtocol


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every tool handler."""

    settings: Settings
    http_client: httpx.AsyncClient | None = None
    cache: CacheProtocol | None = None
    fetcher: FetcherProtocol | None = None
    robots: RobotsPolicyProtocol | None = None
    analyzer: PageAnalyzer | None = None
