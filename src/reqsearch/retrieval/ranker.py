"""Hybrid ranker — vector similarity with an optional lexical boost.

This module is the **primary public interface** for search.  The vector
store returns candidates by similarity; when text matching is requested,
candidates that literally contain the query's words are promoted ahead of
those that merely sit close in embedding space, with the raw similarity
score kept as the final tie-break.

Usage::

    ranker  = HybridRanker(provider, store)
    results = await ranker.search(
        "user authentication",
        top_k=5,
        options=SearchOptions(include_text_matches=True),
    )
    for r in results:
        print(r.relevance_percentage, r.file_name, r.text_matches)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from reqsearch.config import settings
from reqsearch.ingestion.embedder import EmbeddingProvider
from reqsearch.observability import DEFAULT_CONTEXT, RunContext
from reqsearch.retrieval.base import VectorStoreBase
from reqsearch.retrieval.models import IndexedItem, SearchOptions, SearchResult

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 3


def relevance_percentage(score: float) -> int:
    """``score`` as a percentage, rounded half up."""
    return int(math.floor(score * 100 + 0.5))


def query_tokens(query: str) -> list[str]:
    """Lower-cased whitespace tokens of *query*."""
    return query.lower().split()


def match_text(query: str, text: str) -> tuple[list[str], float]:
    """Return the query tokens found in *text* and the match score.

    Only tokens longer than two characters can match, but the score is
    divided by the count of *all* query tokens, so short words in the query
    lower the score without being able to raise it.
    """
    tokens = query_tokens(query)
    if not tokens:
        return [], 0.0
    haystack = text.lower()
    matched = [t for t in tokens if len(t) >= MIN_TOKEN_LENGTH and t in haystack]
    return matched, len(matched) / len(tokens)


def rank_candidates(
    query: str,
    candidates: Sequence[tuple[float, IndexedItem]],
    top_k: int,
    options: SearchOptions | None = None,
) -> list[SearchResult]:
    """Filter, optionally re-order, and truncate a candidate set.

    Parameters
    ----------
    query:
        The original query string (used for lexical matching).
    candidates:
        ``(score, item)`` pairs in the store's similarity order.
    top_k:
        Maximum number of results.
    options:
        Text matching and minimum score settings.

    Returns
    -------
    list[SearchResult]
        At most *top_k* results.  Without text matching the store order is
        preserved; with it, results are ordered by direct match, then text
        match score, then similarity score, all descending.
    """
    options = options or SearchOptions()

    results: list[SearchResult] = []
    for score, item in candidates:
        result = SearchResult.from_item(item, score, relevance_percentage(score))
        if options.include_text_matches:
            matched, match_score = match_text(query, result.text)
            result.has_direct_match = bool(matched)
            result.text_matches = matched
            result.text_match_score = match_score
        results.append(result)

    results = [r for r in results if r.score >= options.min_score]

    if options.include_text_matches:
        results.sort(
            key=lambda r: (bool(r.has_direct_match), r.text_match_score or 0.0, r.score),
            reverse=True,
        )

    return results[: max(top_k, 0)]


class HybridRanker:
    """Query-time search over any :class:`VectorStoreBase`.

    Parameters
    ----------
    provider:
        Embedding provider; must be the one used at indexing time.
    store:
        Vector store to query.
    overfetch_factor / min_candidates:
        The store is asked for ``max(top_k * overfetch_factor,
        min_candidates)`` candidates so that lexical re-ranking can promote
        items outside the raw top-*k*.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        store: VectorStoreBase,
        *,
        overfetch_factor: int = settings.overfetch_factor,
        min_candidates: int = settings.min_candidates,
    ) -> None:
        self._provider = provider
        self._store = store
        self.overfetch_factor = overfetch_factor
        self.min_candidates = min_candidates

    def candidate_count(self, top_k: int) -> int:
        return max(top_k * self.overfetch_factor, self.min_candidates)

    async def search(
        self,
        query: str,
        top_k: int = settings.default_top_k,
        options: SearchOptions | None = None,
        ctx: RunContext = DEFAULT_CONTEXT,
    ) -> list[SearchResult]:
        """Run a hybrid search and return at most *top_k* results."""
        options = options or SearchOptions()
        vector = await self._provider.embed(query)

        k = self.candidate_count(top_k)
        candidates = await self._store.query_items(vector, k)
        ctx.trace("Query %r: %d candidates (requested %d)", query, len(candidates), k)

        results = rank_candidates(query, candidates, top_k, options)

        for rank, r in enumerate(results, 1):
            if options.include_text_matches:
                ctx.trace(
                    "  #%d %s score=%.4f direct=%s matches=%s",
                    rank,
                    r.id,
                    r.score,
                    r.has_direct_match,
                    r.text_matches,
                )
            else:
                ctx.trace("  #%d %s score=%.4f", rank, r.id, r.score)
        return results
