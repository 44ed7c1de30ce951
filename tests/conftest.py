"""Shared test fixtures for the pagescope test suite."""

from __future__ import annotations

import pytest

from pagescope.config import Settings

ARTICLE_HTML = """\
<!DOCTYPE html>
<html>
<head>
  <title>Fallback Title</title>
  <meta property="og:title" content="Understanding HTTP Caching">
  <meta name="description" content="How caches decide what to keep.">
  <meta property="og:description" content="OG description that loses to description.">
  <meta property="article:published_time" content="2024-05-01T09:00:00Z">
  <meta property="article:author" content="Jordan Example">
</head>
<body>
  <nav><a href="/">Home</a> <a href="/blog">Blog</a></nav>
  <article>
    <h1>Understanding HTTP Caching</h1>
    <p>HTTP caching lets clients and proxies reuse earlier responses instead of
    downloading the same representation again from the origin server.</p>
    <h2>Freshness</h2>
    <p>A cached response stays fresh until its max-age elapses, after which the
    cache must revalidate it with the origin before serving it again.</p>
    <p>Routers forward packets between networks and have nothing to do with the
    topic of this article, which is why this paragraph exists.</p>
    <p>Read the <a href="/docs/rfc9111" rel="nofollow noopener">caching RFC</a>
    and the <a href="https://other.example.org/guide">external guide</a> for more
    detail on validators and conditional requests.</p>
  </article>
  <footer>Copyright Example Corp</footer>
</body>
</html>
"""


@pytest.fixture()
def settings() -> Settings:
    """Settings with defaults only (no env or yaml influence on these fields)."""
    return Settings()


@pytest.fixture()
def article_html() -> str:
    return ARTICLE_HTML
