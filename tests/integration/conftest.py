"""Integration test fixtures.

Provides a fully wired AppState: real httpx client (mocked with respx in the
tests), Fetcher, RobotsResolver, an AnalysisCache driven by a controllable
clock, and the PageAnalyzer on top.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import httpx
import pytest

from pagescope.cache import AnalysisCache
from pagescope.config import Settings
from pagescope.fetcher import Fetcher
from pagescope.pipeline import PageAnalyzer
from pagescope.robots import RobotsResolver
from pagescope.state import AppState

_SRC_DIR = Path(__file__).resolve().parents[2] / "src"


class ManualClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
async def app_state(settings: Settings, clock: ManualClock) -> AppState:
    async with httpx.AsyncClient(follow_redirects=False) as client:
        cache = AnalysisCache(
            ttl=timedelta(seconds=settings.cache.ttl_seconds),
            max_entries=settings.cache.max_entries,
            clock=clock,
        )
        fetcher = Fetcher(client, settings.fetcher, settings.guard)
        robots = RobotsResolver(fetcher, settings.robots)
        yield AppState(
            settings=settings,
            http_client=client,
            cache=cache,
            fetcher=fetcher,
            robots=robots,
            analyzer=PageAnalyzer(settings, fetcher=fetcher, robots=robots, cache=cache),
        )


@pytest.fixture()
def subprocess_env() -> dict[str, str]:
    """Baseline env for subprocess-based MCP tests: stdio transport, local source tree."""
    env = os.environ.copy()
    env["PAGESCOPE__SERVER__TRANSPORT"] = "stdio"
    env["PAGESCOPE__LOGGING__LEVEL"] = "WARNING"
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(_SRC_DIR), env.get("PYTHONPATH")]))
    return env
