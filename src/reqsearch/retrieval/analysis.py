"""Lexical diagnostics over the indexed chunks."""

from __future__ import annotations

import re
from collections.abc import Iterable

from reqsearch.retrieval.models import ExactTextMatch, IndexedItem
from reqsearch.retrieval.ranker import MIN_TOKEN_LENGTH, query_tokens

CONTEXT_CHARS = 60


def _context(text: str, start: int, length: int) -> str:
    lo = max(0, start - CONTEXT_CHARS)
    hi = min(len(text), start + length + CONTEXT_CHARS)
    snippet = text[lo:hi]
    if lo > 0:
        snippet = "..." + snippet
    if hi < len(text):
        snippet = snippet + "..."
    return snippet


def find_exact_text(
    items: Iterable[IndexedItem],
    text: str,
    case_sensitive: bool = False,
) -> list[ExactTextMatch]:
    """Return every item whose chunk text contains *text* verbatim."""
    if not text:
        return []
    pattern = re.compile(re.escape(text), 0 if case_sensitive else re.IGNORECASE)

    matches: list[ExactTextMatch] = []
    for item in items:
        body = item.record.text
        hits = list(pattern.finditer(body))
        if not hits:
            continue
        first = hits[0]
        src = item.record.source
        matches.append(
            ExactTextMatch(
                id=item.id,
                file_name=src.file_name,
                chunk_index=item.record.chunk_index,
                sheet=src.sheet,
                row=src.row,
                occurrences=len(hits),
                context=_context(body, first.start(), first.end() - first.start()),
            )
        )
    return matches


def token_document_counts(items: Iterable[IndexedItem], query: str) -> dict[str, int]:
    """Number of chunks containing each significant query token."""
    tokens = [t for t in dict.fromkeys(query_tokens(query)) if len(t) >= MIN_TOKEN_LENGTH]
    counts = {t: 0 for t in tokens}
    for item in items:
        body = item.record.text.lower()
        for t in tokens:
            if t in body:
                counts[t] += 1
    return counts
