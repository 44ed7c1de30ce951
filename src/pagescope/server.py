"""MCP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the FastMCP lifespan context manager
- Register the fetch_and_analyze tool
- Start the correct transport (stdio or HTTP)
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from contextlib import asynccontextmanager, suppress
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog
from mcp.server.fastmcp import Context, FastMCP
from mcp.types import CallToolResult, TextContent

import pagescope.tools.fetch_and_analyze as t_fetch_and_analyze
from pagescope import __version__
from pagescope.cache import AnalysisCache
from pagescope.config import Settings
from pagescope.errors import PageScopeError
from pagescope.fetcher import Fetcher, build_http_client
from pagescope.pipeline import PageAnalyzer
from pagescope.robots import RobotsResolver
from pagescope.schedulers import run_cache_cleanup_scheduler
from pagescope.state import AppState
from pagescope.transport import run_http_server

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # Logs go to stderr; stdout is reserved for the MCP JSON-RPC stream
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def build_state(settings: Settings) -> AppState:
    """Wire the HTTP client, cache, fetcher, robots resolver and analyzer."""
    http_client = build_http_client(settings.fetcher)
    cache = AnalysisCache(
        ttl=timedelta(seconds=settings.cache.ttl_seconds),
        max_entries=settings.cache.max_entries,
    )
    fetcher = Fetcher(http_client, settings.fetcher, settings.guard)
    robots = RobotsResolver(fetcher, settings.robots)
    analyzer = PageAnalyzer(settings, fetcher=fetcher, robots=robots, cache=cache)

    return AppState(
        settings=settings,
        http_client=http_client,
        cache=cache,
        fetcher=fetcher,
        robots=robots,
        analyzer=analyzer,
    )


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    settings = Settings()
    _setup_logging(settings)

    log.info(
        "server_starting",
        version=__version__,
        transport=settings.server.transport,
    )

    state = build_state(settings)
    cache_cleanup_task = asyncio.create_task(run_cache_cleanup_scheduler(state))

    log.info(
        "server_started",
        version=__version__,
        transport=settings.server.transport,
        cache_ttl_seconds=settings.cache.ttl_seconds,
        robots_enabled=settings.robots.enabled,
    )

    try:
        yield state
    finally:
        cache_cleanup_task.cancel()
        with suppress(asyncio.CancelledError):
            await cache_cleanup_task
        if state.http_client is not None:
            await state.http_client.aclose()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# FastMCP instance and tool registration
# ---------------------------------------------------------------------------

mcp = FastMCP("pagescope", lifespan=lifespan)
# FastMCP doesn't expose a version kwarg; set it on the underlying Server
# so the MCP initialize handshake reports our version, not the SDK's.
mcp._mcp_server.version = __version__  # pyright: ignore[reportPrivateUsage]


def _serialise_tool_error(error: PageScopeError) -> CallToolResult:
    """Convert a PageScopeError to the MCP tool error result envelope."""
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(error.to_dict()))],
        isError=True,
    )


@mcp.tool()
async def fetch_and_analyze(
    url: str,
    ctx: Context,
    question: str | None = None,
    use_cache: bool = True,
) -> object:
    """Fetch a public web page and analyze it.

    Returns title, description, author, publish date, word count, headings,
    links, an excerpt and the main readable text. When a question is given,
    also returns the paragraphs that best match it, highest score first.
    Private and local addresses are refused and robots.txt is honored.
    """
    state: AppState = ctx.request_context.lifespan_context
    try:
        return await t_fetch_and_analyze.handle(url, question, use_cache, state)
    except PageScopeError as exc:
        log.warning(
            "tool_error",
            tool="fetch_and_analyze",
            code=exc.code,
            message=exc.message,
            recoverable=exc.recoverable,
        )
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool="fetch_and_analyze", exc_info=True)
        raise


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()

    if settings.server.transport == "http":
        _setup_logging(settings)
        run_http_server(mcp, settings)
        return

    mcp.run()


if __name__ == "__main__":
    main()
