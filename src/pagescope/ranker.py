"""Query-overlap passage ranking.

Paragraphs (blank-line separated, at least 60 characters) are scored by how
many of their tokens appear in the query's token set. Each paragraph token
occurrence counts; repeated query words do not. Zero-score paragraphs are
dropped and the rest are ordered by descending score, keeping document order
among equal scores.
"""

from __future__ import annotations

import re

from pagescope.models.analysis import Passage

MIN_TOKEN_CHARS = 3
MIN_PARAGRAPH_CHARS = 60
MAX_SNIPPET_CHARS = 600
DEFAULT_MAX_RESULTS = 10

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_PARAGRAPH_BREAK_RE = re.compile(r"\n{2,}")


def tokenize(text: str) -> list[str]:
    """Lower-case, replace non-alphanumerics with spaces, keep tokens of 3+ chars."""
    cleaned = _NON_ALNUM_RE.sub(" ", text.lower())
    return [token for token in cleaned.split() if len(token) >= MIN_TOKEN_CHARS]


def split_paragraphs(text: str) -> list[str]:
    """Split on runs of two or more newlines, dropping paragraphs under 60 chars."""
    paragraphs = (segment.strip() for segment in _PARAGRAPH_BREAK_RE.split(text))
    return [p for p in paragraphs if len(p) >= MIN_PARAGRAPH_CHARS]


def score_paragraph(paragraph: str, query_tokens: frozenset[str]) -> int:
    return sum(1 for token in tokenize(paragraph) if token in query_tokens)


def rank(main_text: str, query: str, max_results: int = DEFAULT_MAX_RESULTS) -> list[Passage]:
    """Return up to *max_results* passages of *main_text* most relevant to *query*."""
    query_tokens = frozenset(tokenize(query))
    if not query_tokens or max_results < 1:
        return []

    scored: list[tuple[int, str]] = []
    for paragraph in split_paragraphs(main_text):
        score = score_paragraph(paragraph, query_tokens)
        if score > 0:
            scored.append((score, paragraph))

    # sorted() is stable, so equal scores keep paragraph order
    scored = sorted(scored, key=lambda item: item[0], reverse=True)
    return [
        Passage(snippet=paragraph[:MAX_SNIPPET_CHARS], score=score)
        for score, paragraph in scored[:max_results]
    ]
