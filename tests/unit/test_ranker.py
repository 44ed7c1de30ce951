"""Unit tests for pagescope.ranker."""

from __future__ import annotations

from pagescope.ranker import (
    MAX_SNIPPET_CHARS,
    rank,
    score_paragraph,
    split_paragraphs,
    tokenize,
)

CACHING = (
    "HTTP caching stores responses so that later requests for the same resource are "
    "served without contacting the origin."
)
FRESHNESS = (
    "Cache freshness is governed by max-age; a stale cached response must be "
    "revalidated before the cache reuses it."
)
ROUTERS = (
    "Routers forward packets between networks using routing tables and have no "
    "opinion about application protocols."
)
TEXT = "\n\n".join([CACHING, FRESHNESS, ROUTERS])

# ---------------------------------------------------------------------------
# tokenize / split_paragraphs / score_paragraph
# ---------------------------------------------------------------------------


class TestTokenize:
    def test_lowercases_and_splits_on_punctuation(self) -> None:
        assert tokenize("HTTP-Caching, explained!") == ["http", "caching", "explained"]

    def test_short_tokens_dropped(self) -> None:
        assert tokenize("a an the cat is ok") == ["the", "cat"]

    def test_digits_kept(self) -> None:
        assert tokenize("RFC 9111 (2022)") == ["rfc", "9111", "2022"]

    def test_empty(self) -> None:
        assert tokenize("") == []
        assert tokenize("?!") == []


class TestSplitParagraphs:
    def test_short_paragraphs_dropped(self) -> None:
        text = "Too short.\n\n" + CACHING + "\n\n\n\nAlso short."
        assert split_paragraphs(text) == [CACHING]

    def test_single_newline_does_not_split(self) -> None:
        text = CACHING + "\n" + FRESHNESS
        assert split_paragraphs(text) == [text]

    def test_paragraph_exactly_sixty_chars_kept(self) -> None:
        paragraph = "x" * 60
        assert split_paragraphs(paragraph + "\n\n" + "y" * 59) == [paragraph]


class TestScoreParagraph:
    def test_counts_every_occurrence(self) -> None:
        query = frozenset(tokenize("cache"))
        assert score_paragraph("cache the cache, then cache again", query) == 3

    def test_repeated_query_words_count_once(self) -> None:
        paragraph = "cache entries expire"
        assert score_paragraph(paragraph, frozenset(tokenize("cache cache cache"))) == 1

    def test_no_overlap(self) -> None:
        assert score_paragraph(ROUTERS, frozenset(tokenize("caching"))) == 0


# ---------------------------------------------------------------------------
# rank
# ---------------------------------------------------------------------------


class TestRank:
    def test_relevant_paragraphs_ordered_by_score(self) -> None:
        passages = rank(TEXT, "how does cache freshness work")
        assert [p.snippet for p in passages] == [FRESHNESS]
        assert passages[0].score == 3  # freshness, cache, cache

    def test_zero_score_paragraphs_excluded(self) -> None:
        passages = rank(TEXT, "http caching origin")
        assert [p.snippet for p in passages] == [CACHING]
        assert all(p.score >= 1 for p in passages)

    def test_ties_keep_document_order(self) -> None:
        first = "The first paragraph mentions widgets exactly once in its body text."
        second = "The second paragraph also mentions widgets exactly once in the text."
        passages = rank(first + "\n\n" + second, "widgets")
        assert [p.snippet for p in passages] == [first, second]
        assert [p.score for p in passages] == [1, 1]

    def test_higher_score_first(self) -> None:
        low = "This paragraph talks about a cache only one time and then moves on."
        high = "Every cache layer, browser cache or CDN cache, decides what the cache keeps."
        passages = rank(low + "\n\n" + high, "cache")
        assert [p.score for p in passages] == [4, 1]
        assert passages[0].snippet == high

    def test_max_results(self) -> None:
        paragraphs = [
            f"Paragraph number {i} is about caching and is long enough to rank."
            for i in range(5)
        ]
        passages = rank("\n\n".join(paragraphs), "caching", max_results=2)
        assert len(passages) == 2

    def test_snippet_truncated(self) -> None:
        paragraph = "caching " * 200
        passages = rank(paragraph, "caching")
        assert len(passages[0].snippet) == MAX_SNIPPET_CHARS
        assert passages[0].score == 200

    def test_query_without_usable_tokens(self) -> None:
        assert rank(TEXT, "is it ok?") == []
        assert rank(TEXT, "") == []

    def test_empty_text(self) -> None:
        assert rank("", "caching") == []
