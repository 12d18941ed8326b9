"""Search engine lifecycle — ``Uninitialized`` → ``Ready``.

:class:`SearchEngine` holds configuration only.  :meth:`SearchEngine.initialize`
creates (or reopens) the index and returns a :class:`ReadySearchEngine`,
which is the only object that can index or search.  There is no global
engine and no hidden "is initialised" flag: holding a ready handle *is*
the initialised state.

Usage::

    engine = SearchEngine(Settings(index_path="./requirements-index"))
    ready = await engine.initialize()
    await ready.index_file("docs/brd.pdf")
    results = await ready.search("user authentication", top_k=5)
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from collections.abc import Callable, Iterable
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from reqsearch.config import Settings, settings
from reqsearch.errors import IndexAlreadyExistsError, IndexNotFoundError, StoreError
from reqsearch.ingestion.embedder import EmbeddingProvider, get_embedding_function
from reqsearch.ingestion.loader import extract_units
from reqsearch.ingestion.models import ExtractedUnit, FileIndexResult, IndexingResult
from reqsearch.ingestion.pipeline import EmbeddingBatchPipeline, SleepFn
from reqsearch.observability import DEFAULT_CONTEXT, RunContext
from reqsearch.retrieval.analysis import find_exact_text, token_document_counts
from reqsearch.retrieval.base import VectorStoreBase
from reqsearch.retrieval.models import (
    BackupInfo,
    ExactTextMatch,
    IndexStats,
    SearchAnalysis,
    SearchOptions,
    SearchResult,
)
from reqsearch.retrieval.ranker import HybridRanker, MIN_TOKEN_LENGTH, query_tokens

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)

StoreFactory = Callable[[], VectorStoreBase]


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


async def _ensure_index(store: VectorStoreBase) -> None:
    try:
        await store.create_index()
    except IndexAlreadyExistsError:
        logger.debug("Index %r already exists; reusing it", store.collection_name)


class SearchEngine:
    """Unopened engine: configuration plus directory-level operations.

    Parameters
    ----------
    config:
        Settings to use; defaults to the process-wide ``settings``.
    embeddings:
        LangChain embedding model.  When *None*, one is built from
        ``config`` the first time an embedding is needed.
    store_factory:
        Callable returning a fresh vector store.  Defaults to a persistent
        :class:`~reqsearch.retrieval.chroma_store.ChromaVectorStore` in
        ``config.index_path``.
    sleep:
        Awaitable used for the inter-batch delay.
    """

    state = EngineState.UNINITIALIZED

    def __init__(
        self,
        config: Settings = settings,
        *,
        embeddings: Embeddings | None = None,
        store_factory: StoreFactory | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.config = config
        self._embeddings = embeddings
        self._store_factory = store_factory or self._default_store
        self._sleep = sleep

    @property
    def index_path(self) -> str:
        return self.config.index_path

    def _default_store(self) -> VectorStoreBase:
        from reqsearch.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore(self.config.index_path, self.config.collection_name)

    async def initialize(self) -> ReadySearchEngine:
        """Create or reopen the index.

        Raises
        ------
        StoreError
            For any store failure other than "already exists".
        """
        store = self._store_factory()
        await _ensure_index(store)
        logger.info("Index ready at %s", self.index_path)
        return ReadySearchEngine(self.config, store, embeddings=self._embeddings, sleep=self._sleep)

    async def backup(self, backup_path: str | Path | None = None) -> BackupInfo:
        """Copy the whole index directory to *backup_path*."""
        timestamp = int(time.time() * 1000)
        target = Path(backup_path) if backup_path else Path(f"./index-backup-{timestamp}")
        source = Path(self.index_path)
        try:
            if not source.is_dir():
                raise FileNotFoundError(f"index directory {source} does not exist")
            await asyncio.to_thread(shutil.copytree, source, target, dirs_exist_ok=True)
        except OSError as exc:
            raise StoreError(f"Backup failed: {exc}") from exc
        logger.info("Backed up %s to %s", source, target)
        return BackupInfo(original_path=str(source), backup_path=str(target), timestamp=timestamp)

    async def restore(self, backup_path: str | Path) -> tuple[ReadySearchEngine, IndexStats]:
        """Replace the index directory with *backup_path* and reopen it.

        Handles already open on the index are released first, so ready
        engines obtained before the restore must not be used afterwards.
        """
        source = Path(backup_path)
        target = Path(self.index_path)
        try:
            if not source.is_dir():
                raise FileNotFoundError(f"backup directory {source} does not exist")
            await self._store_factory().close()
            if target.exists():
                await asyncio.to_thread(shutil.rmtree, target)
            await asyncio.to_thread(shutil.copytree, source, target)
            ready = await self.initialize()
        except (OSError, StoreError) as exc:
            raise StoreError(f"Restore failed: {exc}") from exc
        logger.info("Restored %s from %s", target, source)
        return ready, await ready.stats()


class ReadySearchEngine:
    """An open index: indexing, search, statistics and clearing."""

    state = EngineState.READY

    def __init__(
        self,
        config: Settings,
        store: VectorStoreBase,
        *,
        embeddings: Embeddings | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.config = config
        self.store = store
        self._embeddings = embeddings
        self._sleep = sleep
        self._provider: EmbeddingProvider | None = None

    @property
    def provider(self) -> EmbeddingProvider:
        if self._provider is None:
            self._provider = EmbeddingProvider(self._embeddings or get_embedding_function(self.config))
        return self._provider

    @property
    def pipeline(self) -> EmbeddingBatchPipeline:
        return EmbeddingBatchPipeline(
            self.provider,
            self.store,
            chunk_size=self.config.chunk_size,
            overlap=self.config.chunk_overlap,
            batch_size=self.config.batch_size,
            concurrency=self.config.embed_concurrency,
            batch_delay=self.config.batch_delay_seconds,
            preview_chars=self.config.preview_chars,
            sleep=self._sleep,
        )

    @property
    def ranker(self) -> HybridRanker:
        return HybridRanker(
            self.provider,
            self.store,
            overfetch_factor=self.config.overfetch_factor,
            min_candidates=self.config.min_candidates,
        )

    # -- indexing -------------------------------------------------------------

    async def index_units(
        self,
        units: Iterable[ExtractedUnit],
        ctx: RunContext = DEFAULT_CONTEXT,
    ) -> IndexingResult:
        return await self.pipeline.index(units, ctx)

    async def index_file(self, path: str | Path, ctx: RunContext = DEFAULT_CONTEXT) -> FileIndexResult:
        """Extract, chunk, embed and store one file.

        Raises
        ------
        ExtractionError
            The file could not be read; nothing was stored.
        EmbeddingError, StoreError
            Indexing stopped part-way; earlier chunks remain stored.
        """
        path = Path(path)
        units = await asyncio.to_thread(extract_units, path)
        ctx.trace("Extracted %d unit(s) from %s", len(units), path.name)
        result = await self.index_units(units, ctx)
        return FileIndexResult(file_name=path.name, file_path=str(path), chunks_created=result.chunks_created)

    # -- search ---------------------------------------------------------------

    async def search(
        self,
        query: str,
        top_k: int | None = None,
        options: SearchOptions | None = None,
        ctx: RunContext = DEFAULT_CONTEXT,
    ) -> list[SearchResult]:
        if top_k is None:
            top_k = self.config.default_top_k
        return await self.ranker.search(query, top_k, options, ctx)

    async def find_exact_text(self, text: str, case_sensitive: bool = False) -> list[ExactTextMatch]:
        items = await self.store.list_items()
        return find_exact_text(items, text, case_sensitive)

    async def analyze(self, query: str, top_k: int = 10, ctx: RunContext = DEFAULT_CONTEXT) -> SearchAnalysis:
        """Search with text matching and report how the query's words are covered."""
        tokens = query_tokens(query)
        items = await self.store.list_items()
        results = await self.search(query, top_k, SearchOptions(include_text_matches=True), ctx)
        return SearchAnalysis(
            query=query,
            tokens=tokens,
            significant_tokens=[t for t in tokens if len(t) >= MIN_TOKEN_LENGTH],
            token_document_counts=token_document_counts(items, query),
            total_chunks=len(items),
            results=results,
        )

    # -- lifecycle ------------------------------------------------------------

    async def stats(self) -> IndexStats:
        """Chunk and document counts; zero-valued when the index is absent."""
        try:
            items = await self.store.list_items()
        except StoreError as exc:
            logger.warning("Could not list index items: %s", exc)
            return IndexStats.empty(self.config.index_path)

        documents = list(dict.fromkeys(item.file_name for item in items))
        return IndexStats(
            total_chunks=len(items),
            total_documents=len(documents),
            documents=documents,
            index_path=self.config.index_path,
        )

    async def clear(self) -> None:
        """Delete every item; the handle stays usable on an empty index."""
        try:
            await self.store.delete_index()
        except IndexNotFoundError:
            logger.debug("Index %r did not exist", self.store.collection_name)
        await _ensure_index(self.store)

    async def close(self) -> None:
        """Release the store's handles on the index files."""
        await self.store.close()
