"""Batched, rate-limited embedding of chunks into the vector store.

Each extracted unit is chunked, then processed batch by batch:

1. embed every chunk of the batch through a bounded worker pool,
2. wait for all of them,
3. insert the items in ascending chunk order,
4. pause for ``batch_delay`` seconds before the next batch.

The pause is a fixed-rate limiter for the embedding provider; it is not
issued after the last batch of a unit.  Failures are not retried.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable

from reqsearch.config import settings
from reqsearch.errors import ConfigurationError
from reqsearch.ingestion.chunker import chunk_text
from reqsearch.ingestion.embedder import EmbeddingProvider
from reqsearch.ingestion.identity import chunk_id
from reqsearch.ingestion.models import Chunk, ExtractedUnit, IndexingResult
from reqsearch.observability import DEFAULT_CONTEXT, RunContext
from reqsearch.retrieval.base import VectorStoreBase
from reqsearch.retrieval.models import ChunkRecord, IndexedItem

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[object]]


def make_preview(text: str, limit: int = 150) -> str:
    """First *limit* characters of *text* followed by an ellipsis."""
    return text[:limit] + "..."


class EmbeddingBatchPipeline:
    """Chunk, embed and persist extracted units.

    Parameters
    ----------
    provider:
        Embedding provider used for every chunk.
    store:
        Destination vector store.
    chunk_size / overlap:
        Word-window parameters forwarded to :func:`chunk_text`.
    batch_size:
        Chunks per batch; a delay separates consecutive batches.
    concurrency:
        Maximum number of embedding calls in flight at once.
    batch_delay:
        Seconds to wait between batches.
    preview_chars:
        Length of the stored text preview.
    sleep:
        Awaitable used for the inter-batch delay (``asyncio.sleep``).
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        store: VectorStoreBase,
        *,
        chunk_size: int = settings.chunk_size,
        overlap: int = settings.chunk_overlap,
        batch_size: int = settings.batch_size,
        concurrency: int = settings.embed_concurrency,
        batch_delay: float = settings.batch_delay_seconds,
        preview_chars: int = settings.preview_chars,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if batch_size <= 0:
            raise ConfigurationError(f"batch_size ({batch_size}) must be > 0")
        if concurrency <= 0:
            raise ConfigurationError(f"concurrency ({concurrency}) must be > 0")
        self._provider = provider
        self._store = store
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.batch_size = batch_size
        self.concurrency = concurrency
        self.batch_delay = batch_delay
        self.preview_chars = preview_chars
        self._sleep = sleep

    # -- public API -----------------------------------------------------------

    async def index(
        self,
        units: Iterable[ExtractedUnit],
        ctx: RunContext = DEFAULT_CONTEXT,
    ) -> IndexingResult:
        """Index every unit in order and return the total chunk count.

        The first embedding or store failure aborts the current unit and
        propagates; items already inserted stay in the store.
        """
        total = 0
        for unit in units:
            total += await self.index_unit(unit, ctx)
        return IndexingResult(chunks_created=total)

    async def index_unit(self, unit: ExtractedUnit, ctx: RunContext = DEFAULT_CONTEXT) -> int:
        """Index a single unit; returns the number of chunks it produced."""
        chunks = chunk_text(unit.text, self.chunk_size, self.overlap)
        ctx.trace(
            "%s%s: %d words -> %d chunks",
            unit.file_name,
            f" [{unit.sheet} row {unit.row}]" if unit.sheet else "",
            len(unit.text.split()),
            len(chunks),
        )

        semaphore = asyncio.Semaphore(self.concurrency)
        for start in range(0, len(chunks), self.batch_size):
            batch = chunks[start : start + self.batch_size]
            vectors = await self._embed_batch(semaphore, batch)

            for offset, (chunk, vector) in enumerate(zip(batch, vectors)):
                index = start + offset
                await self._store.insert_item(self._build_item(unit, index, chunk, vector))

            ctx.trace(
                "  stored batch %d (%d-%d) of %s",
                start // self.batch_size + 1,
                start,
                start + len(batch) - 1,
                unit.file_name,
            )

            if start + self.batch_size < len(chunks):
                await self._sleep(self.batch_delay)

        return len(chunks)

    # -- internals ------------------------------------------------------------

    async def _embed_batch(self, semaphore: asyncio.Semaphore, batch: list[Chunk]) -> list[list[float]]:
        async def _embed_one(chunk: Chunk) -> list[float]:
            async with semaphore:
                return await self._provider.embed(chunk.text)

        tasks = [asyncio.ensure_future(_embed_one(chunk)) for chunk in batch]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

    def _build_item(self, unit: ExtractedUnit, index: int, chunk: Chunk, vector: list[float]) -> IndexedItem:
        record = ChunkRecord(
            source=unit.source,
            chunk_index=index,
            text=chunk.text,
            word_count=chunk.word_count,
            preview=make_preview(chunk.text, self.preview_chars),
        )
        return IndexedItem(id=chunk_id(unit, index), vector=vector, record=record)
