"""The fetch-and-analyze pipeline.

    guard -> cache lookup -> robots check -> fetch -> extract -> rank -> cache store

Every stage raises its own ``PageScopeError`` subclass and nothing here
catches them: a failure at any stage is the outcome of the call. There are
no retries.

With caching enabled, concurrent calls for the same normalized URL share a
single in-flight fetch and extraction. The cached analysis is re-ranked for
each caller's question, so a cache hit never returns passages computed for
a different question.
"""

from __future__ import annotations

import asyncio
import functools
from typing import TYPE_CHECKING

import structlog

from pagescope.errors import RobotsDisallowedError
from pagescope.extractor import extract
from pagescope.guard import ensure_allowed, parse_target
from pagescope.models.analysis import PageAnalysis, Passage
from pagescope.ranker import rank

if TYPE_CHECKING:
    from pagescope.config import Settings
    from pagescope.models.analysis import ExtractedContent, URLTarget
    from pagescope.protocols import CacheProtocol, FetcherProtocol, RobotsPolicyProtocol

log = structlog.get_logger()

MAX_EXCERPT_CHARS = 1000


def build_analysis(
    url: str,
    final_url: str,
    content: ExtractedContent,
    question: str | None,
    max_results: int,
) -> PageAnalysis:
    main_text = content.main_text
    return PageAnalysis(
        url=url,
        final_url=final_url,
        title=content.metadata.title,
        description=content.metadata.description,
        published_at=content.metadata.published_at,
        author=content.metadata.author,
        word_count=len(main_text.split()),
        headings=content.headings,
        links=content.links,
        excerpt=main_text[:MAX_EXCERPT_CHARS],
        main_text=main_text,
        relevant_passages=_passages(main_text, question, max_results),
    )


def _passages(main_text: str, question: str | None, max_results: int) -> tuple[Passage, ...]:
    if not question:
        return ()
    return tuple(rank(main_text, question, max_results))


class PageAnalyzer:
    """Runs fetch_and_analyze against injected cache, robots and fetcher services."""

    def __init__(
        self,
        settings: Settings,
        fetcher: FetcherProtocol,
        robots: RobotsPolicyProtocol,
        cache: CacheProtocol,
    ) -> None:
        self._settings = settings
        self._fetcher = fetcher
        self._robots = robots
        self._cache = cache
        self._inflight: dict[str, asyncio.Task[PageAnalysis]] = {}

    async def fetch_and_analyze(
        self,
        url: str,
        question: str | None = None,
        use_cache: bool = True,
    ) -> PageAnalysis:
        """Fetch *url*, extract its content and rank passages against *question*."""
        target = parse_target(url)
        ensure_allowed(target)

        bound = log.bind(url=target.url)
        max_results = self._settings.ranker.max_results

        if not use_cache:
            return await self._analyze(target, question, max_results)

        cached = await self._cache.get(target.url)
        if cached is not None:
            bound.info("cache_hit")
            return self._rerank(cached, question, max_results)

        bound.info("cache_miss")
        task = self._inflight.get(target.url)
        if task is None:
            task = asyncio.ensure_future(self._analyze_and_store(target, question, max_results))
            self._inflight[target.url] = task
            task.add_done_callback(functools.partial(self._finish_inflight, target.url))
        else:
            bound.debug("joined_inflight_fetch")

        # Shield so one caller's cancellation does not fail the other waiters
        analysis = await asyncio.shield(task)
        return self._rerank(analysis, question, max_results)

    def _finish_inflight(self, key: str, task: asyncio.Task[PageAnalysis]) -> None:
        self._inflight.pop(key, None)
        # Mark the error retrieved even when every waiter was cancelled
        if not task.cancelled():
            task.exception()

    async def _analyze_and_store(
        self,
        target: URLTarget,
        question: str | None,
        max_results: int,
    ) -> PageAnalysis:
        analysis = await self._analyze(target, question, max_results)
        await self._cache.put(target.url, analysis)
        return analysis

    async def _analyze(
        self,
        target: URLTarget,
        question: str | None,
        max_results: int,
    ) -> PageAnalysis:
        robots = self._settings.robots
        if robots.enabled and not await self._robots.is_allowed(target, robots.agent_token):
            log.warning("robots_disallowed", url=target.url, agent=robots.agent_token)
            raise RobotsDisallowedError(
                f"robots.txt disallows {target.path} for agent {robots.agent_token!r}"
            )

        response = await self._fetcher.fetch(target)
        # CPU-bound parse runs in a worker thread
        content = await asyncio.to_thread(extract, response.body, response.final_url)
        return build_analysis(target.url, response.final_url, content, question, max_results)

    @staticmethod
    def _rerank(analysis: PageAnalysis, question: str | None, max_results: int) -> PageAnalysis:
        passages = _passages(analysis.main_text, question, max_results)
        if passages == analysis.relevant_passages:
            return analysis
        return analysis.model_copy(update={"relevant_passages": passages})
