"""Persistent Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import chromadb
from chromadb.api.client import SharedSystemClient

from reqsearch.config import settings
from reqsearch.errors import IndexAlreadyExistsError, IndexNotFoundError, StoreError
from reqsearch.retrieval.base import VectorStoreBase
from reqsearch.retrieval.models import ChunkRecord, IndexedItem

logger = logging.getLogger(__name__)


def _is_already_exists(exc: Exception) -> bool:
    return "already exists" in str(exc).lower()


def _is_missing(exc: Exception) -> bool:
    msg = str(exc).lower()
    return "does not exist" in msg or "not found" in msg


def _hits_from_query(results: dict[str, Any]) -> list[tuple[float, IndexedItem]]:
    """Turn a Chroma ``query`` response into ``(score, item)`` pairs."""
    ids = (results.get("ids") or [[]])[0]
    metas = (results.get("metadatas") or [[]])[0]
    distances = (results.get("distances") or [[]])[0]

    hits: list[tuple[float, IndexedItem]] = []
    for item_id, meta, dist in zip(ids, metas, distances):
        # Cosine space: distance = 1 - similarity.
        score = 1.0 - float(dist)
        record = ChunkRecord.from_metadata(dict(meta or {}))
        hits.append((score, IndexedItem(id=item_id, record=record)))
    return hits


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store persisted in a local directory.

    Parameters
    ----------
    index_path:
        Directory holding the Chroma database files.
    collection_name:
        Name of the Chroma collection.
    """

    def __init__(
        self,
        index_path: str | Path = settings.index_path,
        collection_name: str = settings.collection_name,
    ) -> None:
        super().__init__(collection_name)
        self.index_path = str(index_path)
        self._client: Any | None = None
        self._collection: Any | None = None

    # -- helpers --------------------------------------------------------------

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = chromadb.PersistentClient(path=self.index_path)
        return self._client

    def _require_collection(self) -> Any:
        if self._collection is None:
            try:
                self._collection = self.client.get_collection(self.collection_name)
            except Exception as exc:
                if _is_missing(exc):
                    raise IndexNotFoundError(
                        f"Index {self.collection_name!r} does not exist at {self.index_path}"
                    ) from exc
                raise StoreError(f"Failed to open index {self.collection_name!r}: {exc}") from exc
        return self._collection

    # -- VectorStoreBase overrides --------------------------------------------

    async def create_index(self) -> None:
        def _create() -> Any:
            try:
                return self.client.create_collection(
                    name=self.collection_name,
                    metadata={"hnsw:space": "cosine"},
                )
            except Exception as exc:
                if _is_already_exists(exc):
                    raise IndexAlreadyExistsError(
                        f"Index {self.collection_name!r} already exists"
                    ) from exc
                raise StoreError(f"Failed to create index {self.collection_name!r}: {exc}") from exc

        self._collection = await asyncio.to_thread(_create)
        logger.info("Created index %r at %s", self.collection_name, self.index_path)

    async def insert_item(self, item: IndexedItem) -> None:
        def _insert() -> None:
            collection = self._require_collection()
            try:
                collection.add(
                    ids=[item.id],
                    embeddings=[item.vector],
                    metadatas=[item.record.to_metadata()],
                )
            except Exception as exc:
                raise StoreError(f"Failed to insert {item.id!r}: {exc}") from exc

        await asyncio.to_thread(_insert)

    async def query_items(self, vector: list[float], k: int) -> list[tuple[float, IndexedItem]]:
        def _query() -> list[tuple[float, IndexedItem]]:
            collection = self._require_collection()
            try:
                count = collection.count()
                if count == 0:
                    return []
                results = collection.query(
                    query_embeddings=[vector],
                    n_results=min(k, count),
                    include=["metadatas", "distances"],
                )
            except Exception as exc:
                raise StoreError(f"Query failed: {exc}") from exc
            return _hits_from_query(results)

        return await asyncio.to_thread(_query)

    async def list_items(self) -> list[IndexedItem]:
        def _list() -> list[IndexedItem]:
            collection = self._require_collection()
            try:
                results = collection.get(include=["metadatas"])
            except Exception as exc:
                raise StoreError(f"Listing items failed: {exc}") from exc
            ids = results.get("ids") or []
            metas = results.get("metadatas") or []
            return [
                IndexedItem(id=item_id, record=ChunkRecord.from_metadata(dict(meta or {})))
                for item_id, meta in zip(ids, metas)
            ]

        return await asyncio.to_thread(_list)

    async def delete_index(self) -> None:
        def _delete() -> None:
            try:
                self.client.delete_collection(self.collection_name)
            except Exception as exc:
                if _is_missing(exc):
                    raise IndexNotFoundError(
                        f"Index {self.collection_name!r} does not exist"
                    ) from exc
                raise StoreError(f"Failed to delete index {self.collection_name!r}: {exc}") from exc
            finally:
                self._collection = None

        await asyncio.to_thread(_delete)
        logger.info("Deleted index %r at %s", self.collection_name, self.index_path)

    async def close(self) -> None:
        """Stop the cached Chroma system so the directory can be swapped.

        Chroma keeps one system per persist path for the whole process and
        hands it back to every new client on that path.  Clearing the cache
        stops every cached system, so any other store still holding an open
        client must be closed as well.
        """
        SharedSystemClient.clear_system_cache()
        self._client = None
        self._collection = None
        logger.debug("Released Chroma system for %s", self.index_path)
