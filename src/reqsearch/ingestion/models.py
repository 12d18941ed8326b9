"""Records flowing through the ingestion stage."""

from __future__ import annotations

from pydantic import BaseModel

from reqsearch.retrieval.models import ChunkSource, DocumentType


class ExtractedUnit(BaseModel):
    """Raw text produced by an extractor for one file, or one spreadsheet row."""

    text: str
    source: ChunkSource

    @property
    def file_name(self) -> str:
        return self.source.file_name

    @property
    def file_path(self) -> str:
        return self.source.file_path

    @property
    def type(self) -> DocumentType:
        return self.source.type

    @property
    def sheet(self) -> str | None:
        return self.source.sheet

    @property
    def row(self) -> int | None:
        return self.source.row

    @property
    def row_range(self) -> str | None:
        return self.source.row_range


class Chunk(BaseModel):
    """A word window of an :class:`ExtractedUnit`."""

    text: str
    start_index: int
    word_count: int


class IndexingResult(BaseModel):
    """Outcome of :meth:`EmbeddingBatchPipeline.index`."""

    chunks_created: int = 0


class FileIndexResult(BaseModel):
    """Outcome of indexing a single file through the engine."""

    file_name: str
    file_path: str
    chunks_created: int = 0
