"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import math

import pytest
from langchain_core.embeddings import Embeddings

from reqsearch.config import Settings
from reqsearch.errors import IndexAlreadyExistsError, IndexNotFoundError
from reqsearch.retrieval.base import VectorStoreBase
from reqsearch.retrieval.models import IndexedItem

VOCABULARY = [
    "user",
    "login",
    "authentication",
    "password",
    "report",
    "invoice",
    "export",
    "payment",
]


# ── Fakes ──────────────────────────────────────────────────────────────


class KeywordEmbeddings(Embeddings):
    """Bag-of-words vectors over a tiny fixed vocabulary.

    Texts sharing vocabulary words land close together, which is enough to
    make similarity ordering predictable in tests.  Every call is recorded.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def _vector(self, text: str) -> list[float]:
        words = text.lower().split()
        vec = [float(words.count(w)) for w in VOCABULARY]
        vec.append(1.0)  # bias keeps every vector non-zero
        return vec

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._vector(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        return self._vector(text)

    async def aembed_query(self, text: str) -> list[float]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return self.embed_query(text)
        finally:
            self.in_flight -= 1


class FailingEmbeddings(KeywordEmbeddings):
    """Fails for any text containing *trigger*."""

    def __init__(self, trigger: str = "boom") -> None:
        super().__init__()
        self.trigger = trigger

    def embed_query(self, text: str) -> list[float]:
        if self.trigger in text:
            raise RuntimeError("provider unavailable")
        return super().embed_query(text)


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    na = math.sqrt(sum(x * x for x in a))
    nb = math.sqrt(sum(y * y for y in b))
    if na == 0 or nb == 0:
        return 0.0
    return dot / (na * nb)


class InMemoryVectorStore(VectorStoreBase):
    """List-backed store with cosine scoring; records insert order."""

    def __init__(self, exists: bool = False) -> None:
        super().__init__("test-collection")
        self.exists = exists
        self.items: list[IndexedItem] = []
        self.create_calls = 0
        self.fail_on_insert: str | None = None
        self.close_calls = 0

    async def create_index(self) -> None:
        self.create_calls += 1
        if self.exists:
            raise IndexAlreadyExistsError("already exists")
        self.exists = True

    async def insert_item(self, item: IndexedItem) -> None:
        if not self.exists:
            raise IndexNotFoundError("no index")
        if self.fail_on_insert and item.id == self.fail_on_insert:
            from reqsearch.errors import StoreError

            raise StoreError(f"write rejected for {item.id}")
        self.items.append(item)

    async def query_items(self, vector: list[float], k: int) -> list[tuple[float, IndexedItem]]:
        if not self.exists:
            raise IndexNotFoundError("no index")
        scored = [(_cosine(vector, item.vector), item) for item in self.items]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return scored[:k]

    async def list_items(self) -> list[IndexedItem]:
        if not self.exists:
            raise IndexNotFoundError("no index")
        return list(self.items)

    async def delete_index(self) -> None:
        if not self.exists:
            raise IndexNotFoundError("does not exist")
        self.exists = False
        self.items = []

    async def close(self) -> None:
        self.close_calls += 1


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that only counts calls."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def embeddings() -> KeywordEmbeddings:
    return KeywordEmbeddings()


@pytest.fixture()
def store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def test_settings(tmp_path) -> Settings:
    return Settings(
        index_path=str(tmp_path / "index"),
        openai_api_key="",
        chunk_size=10,
        chunk_overlap=2,
    )
