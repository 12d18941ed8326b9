"""Exception hierarchy shared by ingestion, retrieval and the engine."""

from __future__ import annotations


class ReqSearchError(Exception):
    """Base class for every error raised by :mod:`reqsearch`."""


class ConfigurationError(ReqSearchError):
    """Invalid settings or chunking parameters."""


class ExtractionError(ReqSearchError):
    """A file could not be read or parsed into text."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class UnsupportedFormatError(ExtractionError):
    """The file extension has no registered extractor."""


class EmbeddingError(ReqSearchError):
    """The embedding provider failed to return a vector."""


class StoreError(ReqSearchError):
    """The vector store rejected an operation."""


class IndexAlreadyExistsError(StoreError):
    """``create_index`` was called on an index that already exists."""


class IndexNotFoundError(StoreError):
    """The index does not exist (never created, or deleted)."""
