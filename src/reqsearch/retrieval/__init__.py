"""
Retrieval — vector storage, hybrid ranking, and lexical diagnostics.

This module wraps the vector store behind a clean interface so that the
engine never needs to know which DB is backing retrieval.

Public surface
--------------
- :class:`HybridRanker` — query entry point (vector score + lexical boost).
- :class:`VectorStoreBase` — abstract async backend.
- :class:`ChromaVectorStore` — default persistent Chroma backend.
- :class:`SearchResult`, :class:`SearchOptions`, :class:`IndexedItem`,
  :class:`ChunkRecord`, :class:`IndexStats` — data models.
"""

from reqsearch.retrieval.base import VectorStoreBase
from reqsearch.retrieval.models import (
    ChunkRecord,
    DocumentType,
    ExcelRowSource,
    IndexedItem,
    IndexStats,
    SearchOptions,
    SearchResult,
    TextFileSource,
)
from reqsearch.retrieval.ranker import HybridRanker, match_text, rank_candidates

__all__ = [
    "ChromaVectorStore",
    "ChunkRecord",
    "DocumentType",
    "ExcelRowSource",
    "HybridRanker",
    "IndexStats",
    "IndexedItem",
    "SearchOptions",
    "SearchResult",
    "TextFileSource",
    "VectorStoreBase",
    "match_text",
    "rank_candidates",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from reqsearch.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
