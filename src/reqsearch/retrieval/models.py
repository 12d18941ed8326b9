"""Domain models for indexed chunks, search results and index statistics."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class DocumentType(str, Enum):
    """Kind of file a chunk was extracted from."""

    PDF = "pdf"
    DOCX = "docx"
    EXCEL = "excel"
    TEXT = "text"


class TextFileSource(BaseModel):
    """A whole PDF, DOCX or plain-text file."""

    kind: Literal["file"] = "file"
    file_name: str
    file_path: str = ""
    type: DocumentType = DocumentType.TEXT

    @property
    def sheet(self) -> None:
        return None

    @property
    def row(self) -> None:
        return None

    @property
    def row_range(self) -> None:
        return None


class ExcelRowSource(BaseModel):
    """A single row of one sheet of a workbook."""

    kind: Literal["excel_row"] = "excel_row"
    file_name: str
    file_path: str = ""
    sheet: str
    row: int

    @property
    def type(self) -> DocumentType:
        return DocumentType.EXCEL

    @property
    def row_range(self) -> str:
        return f"{self.row}:{self.row}"


ChunkSource = Annotated[Union[TextFileSource, ExcelRowSource], Field(discriminator="kind")]


class ChunkRecord(BaseModel):
    """Payload shared by every indexed chunk, whatever its source.

    Attributes
    ----------
    source:
        Where the chunk came from (file or spreadsheet row).
    chunk_index:
        Zero-based position of the chunk within its extracted unit.
    text:
        Full chunk text.
    word_count:
        Number of words in the chunk window.
    preview:
        Truncated text shown in result listings.
    """

    source: ChunkSource
    chunk_index: int
    text: str
    word_count: int
    preview: str

    def to_metadata(self) -> dict[str, Any]:
        """Flatten into a store-friendly map of scalar values.

        Optional fields that are unset are left out because vector stores
        such as Chroma only accept ``str``/``int``/``float``/``bool`` values.
        """
        src = self.source
        meta: dict[str, Any] = {
            "source_kind": src.kind,
            "file_name": src.file_name,
            "file_path": src.file_path,
            "type": src.type.value,
            "chunk_index": self.chunk_index,
            "text": self.text,
            "word_count": self.word_count,
            "preview": self.preview,
        }
        if isinstance(src, ExcelRowSource):
            meta["sheet"] = src.sheet
            meta["row"] = src.row
            meta["row_range"] = src.row_range
        return meta

    @classmethod
    def from_metadata(cls, meta: dict[str, Any]) -> ChunkRecord:
        """Rebuild a record from the map produced by :meth:`to_metadata`."""
        source: TextFileSource | ExcelRowSource
        if meta.get("source_kind") == "excel_row" or meta.get("sheet") is not None:
            source = ExcelRowSource(
                file_name=meta.get("file_name", "unknown"),
                file_path=meta.get("file_path", ""),
                sheet=str(meta.get("sheet", "")),
                row=int(meta.get("row") or 0),
            )
        else:
            source = TextFileSource(
                file_name=meta.get("file_name", "unknown"),
                file_path=meta.get("file_path", ""),
                type=meta.get("type", DocumentType.TEXT.value),
            )
        text = meta.get("text", "")
        return cls(
            source=source,
            chunk_index=int(meta.get("chunk_index", 0)),
            text=text,
            word_count=int(meta.get("word_count", len(text.split()))),
            preview=meta.get("preview", ""),
        )


class IndexedItem(BaseModel):
    """A chunk as stored in the vector index."""

    id: str
    vector: list[float] = Field(default_factory=list)
    record: ChunkRecord

    @property
    def file_name(self) -> str:
        return self.record.source.file_name


class SearchOptions(BaseModel):
    """Optional knobs for :meth:`HybridRanker.search`."""

    include_text_matches: bool = False
    min_score: float = 0.0


class SearchResult(BaseModel):
    """Read-only view over a queried item plus its similarity signals."""

    id: str
    score: float
    relevance_percentage: int
    file_name: str
    file_path: str = ""
    text: str
    preview: str
    chunk_index: int
    type: DocumentType
    sheet: str | None = None
    row: int | None = None
    row_range: str | None = None

    # Populated only when lexical analysis was requested.
    has_direct_match: bool | None = None
    text_matches: list[str] | None = None
    text_match_score: float | None = None

    @classmethod
    def from_item(cls, item: IndexedItem, score: float, relevance_percentage: int) -> SearchResult:
        rec = item.record
        src = rec.source
        return cls(
            id=item.id,
            score=score,
            relevance_percentage=relevance_percentage,
            file_name=src.file_name,
            file_path=src.file_path,
            text=rec.text,
            preview=rec.preview,
            chunk_index=rec.chunk_index,
            type=src.type,
            sheet=src.sheet,
            row=src.row,
            row_range=src.row_range,
        )

    def __str__(self) -> str:  # noqa: D105
        where = f" [{self.sheet} row {self.row}]" if self.sheet else ""
        return f"{self.file_name}{where} ({self.relevance_percentage}%) {self.preview}"


class IndexStats(BaseModel):
    """Summary of what the index currently holds."""

    total_chunks: int = 0
    total_documents: int = 0
    documents: list[str] = Field(default_factory=list)
    index_path: str = ""

    @classmethod
    def empty(cls, index_path: str) -> IndexStats:
        return cls(index_path=index_path)


class BackupInfo(BaseModel):
    """Where an index was copied to, and when (epoch milliseconds)."""

    original_path: str
    backup_path: str
    timestamp: int


class ExactTextMatch(BaseModel):
    """An indexed chunk that literally contains a searched string."""

    id: str
    file_name: str
    chunk_index: int
    sheet: str | None = None
    row: int | None = None
    occurrences: int
    context: str


class SearchAnalysis(BaseModel):
    """Diagnostics for a query: token coverage across the index plus ranked hits."""

    query: str
    tokens: list[str]
    significant_tokens: list[str]
    token_document_counts: dict[str, int] = Field(default_factory=dict)
    total_chunks: int = 0
    results: list[SearchResult] = Field(default_factory=list)

    @property
    def missing_tokens(self) -> list[str]:
        """Significant tokens that appear in no indexed chunk."""
        return [t for t in self.significant_tokens if not self.token_document_counts.get(t)]
