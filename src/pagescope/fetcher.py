"""Bounded HTTP page fetcher with SSRF-safe redirect handling.

All network I/O goes through a single Fetcher instance shared across tool
calls. The Fetcher receives an httpx.AsyncClient via constructor injection;
the server lifespan owns the client lifecycle.

Every fetch is bounded: one overall deadline covering all redirect hops and
the body read, a declared Content-Length pre-check, and a hard cap on bytes
actually read. Redirects are followed manually so that each hop is checked
by the address guard before it is contacted.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING
from urllib.parse import urljoin

import httpx
import structlog

from pagescope.errors import (
    FetchError,
    FetchTimeoutError,
    HTTPStatusError,
    PageScopeError,
    SizeLimitError,
)
from pagescope.guard import ensure_allowed, ensure_resolved_allowed, parse_target
from pagescope.models.analysis import FetchResponse

if TYPE_CHECKING:
    from pagescope.config import FetcherSettings, GuardSettings
    from pagescope.models.analysis import URLTarget

log = structlog.get_logger()

HTML_ACCEPT = "text/html,application/xhtml+xml;q=0.9,*/*;q=0.1"


def build_http_client(settings: FetcherSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": settings.user_agent},
        limits=httpx.Limits(
            max_connections=20,
            max_keepalive_connections=10,
        ),
    )


def _declared_length(response: httpx.Response) -> int | None:
    raw = response.headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


async def _read_body_with_limit(response: httpx.Response, max_bytes: int) -> bytes:
    """Read the response body, aborting as soon as it exceeds *max_bytes*."""
    chunks: list[bytes] = []
    total = 0
    async for chunk in response.aiter_bytes():
        total += len(chunk)
        if total > max_bytes:
            raise SizeLimitError(f"Response body exceeds {max_bytes} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


class Fetcher:
    """HTTP page fetcher enforcing time, size and address bounds."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: FetcherSettings,
        guard_settings: GuardSettings | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._resolve_dns = guard_settings.resolve_dns if guard_settings else False

    async def fetch(
        self,
        target: URLTarget,
        *,
        accept: str = HTML_ACCEPT,
        max_bytes: int | None = None,
        timeout_seconds: float | None = None,
    ) -> FetchResponse:
        """Fetch *target*, following redirects, within the configured bounds.

        Raises ``FetchTimeoutError`` when the deadline passes (the in-flight
        request is cancelled), ``SizeLimitError`` when the body is too large,
        ``HTTPStatusError`` for a non-2xx final status, ``BlockedAddressError``
        or ``SchemeError`` for a disallowed redirect hop and ``FetchError`` for
        transport failures.
        """
        limit = max_bytes if max_bytes is not None else self._settings.max_bytes
        timeout = timeout_seconds if timeout_seconds is not None else self._settings.timeout_seconds

        try:
            return await asyncio.wait_for(self._fetch(target, accept, limit), timeout=timeout)
        except TimeoutError as exc:
            log.warning("fetch_timeout", url=target.url, timeout=timeout)
            raise FetchTimeoutError(
                f"Fetching {target.url} exceeded {timeout:g} seconds"
            ) from exc

    async def _fetch(self, target: URLTarget, accept: str, max_bytes: int) -> FetchResponse:
        current = target
        max_redirects = self._settings.max_redirects

        try:
            for hop in range(max_redirects + 1):
                ensure_allowed(current)
                if self._resolve_dns:
                    await ensure_resolved_allowed(current)

                request = self._client.build_request(
                    "GET", current.url, headers={"Accept": accept}
                )
                response = await self._client.send(request, stream=True)
                try:
                    if response.is_redirect and "location" in response.headers:
                        if hop == max_redirects:
                            raise FetchError(
                                f"Too many redirects fetching {target.url}",
                                suggestion="The URL has an unusually long redirect chain.",
                                recoverable=False,
                            )
                        location = urljoin(current.url, response.headers["location"])
                        current = parse_target(location)
                        log.debug("redirect_followed", url=target.url, location=current.url)
                        continue

                    return await self._finish(target, current, response, max_bytes)
                finally:
                    await response.aclose()

        except PageScopeError:
            raise
        except httpx.TimeoutException as exc:
            log.warning("fetch_timeout", url=target.url)
            raise FetchTimeoutError(f"Timed out fetching {target.url}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Network error fetching {target.url}: {exc}") from exc

        # Unreachable but satisfies the type checker
        raise FetchError(f"Redirect loop fetching {target.url}", recoverable=False)

    async def _finish(
        self,
        target: URLTarget,
        final: URLTarget,
        response: httpx.Response,
        max_bytes: int,
    ) -> FetchResponse:
        if not response.is_success:
            raise HTTPStatusError(
                f"HTTP {response.status_code} fetching {target.url}",
                status_code=response.status_code,
            )

        declared = _declared_length(response)
        if declared is not None and declared > max_bytes:
            log.warning(
                "size_limit_exceeded",
                url=target.url,
                declared_bytes=declared,
                max_bytes=max_bytes,
            )
            raise SizeLimitError(
                f"Declared Content-Length {declared} exceeds {max_bytes} bytes for {target.url}"
            )

        try:
            body = await _read_body_with_limit(response, max_bytes)
        except SizeLimitError:
            log.warning("size_limit_exceeded", url=target.url, max_bytes=max_bytes)
            raise

        encoding = response.charset_encoding or "utf-8"
        try:
            text = body.decode(encoding, errors="replace")
        except LookupError:
            text = body.decode("utf-8", errors="replace")

        log.info(
            "fetch_complete",
            url=target.url,
            final_url=final.url,
            status_code=response.status_code,
            content_length=len(body),
        )
        return FetchResponse(
            status=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            final_url=final.url,
            body=text,
            bytes_read=len(body),
        )
