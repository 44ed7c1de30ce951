"""Background scheduler coroutine for cache cleanup."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pagescope.state import AppState

log = structlog.get_logger()


async def run_cache_cleanup_scheduler(state: AppState) -> None:
    """Sweep expired cache entries every ``cleanup_interval_seconds``.

    Lookups already treat expired entries as absent; the sweep only bounds
    memory held by entries that are never requested again. Runs until
    cancelled by the lifespan.
    """
    interval = state.settings.cache.cleanup_interval_seconds

    while True:
        await asyncio.sleep(interval)
        if state.cache is None:
            continue
        try:
            await state.cache.cleanup_expired()
        except Exception:
            log.warning("cache_cleanup_error", exc_info=True)
