"""Word-window chunking."""

from __future__ import annotations

from reqsearch.errors import ConfigurationError
from reqsearch.ingestion.models import Chunk


def chunk_text(text: str, chunk_size: int = 500, overlap: int = 50) -> list[Chunk]:
    """Split *text* into overlapping word windows.

    Windows start at word offsets ``0, stride, 2*stride, ...`` with
    ``stride = chunk_size - overlap``, so consecutive chunks share exactly
    *overlap* words.  The last window may be shorter than *chunk_size*.
    No window is started once one has reached the final word, so a text of
    ``n > overlap`` words yields ``ceil((n - overlap) / stride)`` chunks.

    Parameters
    ----------
    text:
        Extracted text of one unit.
    chunk_size:
        Number of words per window.
    overlap:
        Number of words repeated at the start of the next window.

    Returns
    -------
    list[Chunk]
        Chunks in ascending ``start_index`` order; empty for blank input.

    Raises
    ------
    ConfigurationError
        If ``chunk_size`` is not positive, ``overlap`` is negative, or
        ``overlap >= chunk_size``.
    """
    if chunk_size <= 0:
        raise ConfigurationError(f"chunk_size ({chunk_size}) must be > 0")
    if overlap < 0:
        raise ConfigurationError(f"overlap ({overlap}) must be >= 0")
    stride = chunk_size - overlap
    if stride <= 0:
        raise ConfigurationError(f"overlap ({overlap}) must be < chunk_size ({chunk_size})")

    words = text.split()
    n = len(words)

    chunks: list[Chunk] = []
    for offset in range(0, n, stride):
        window = " ".join(words[offset : offset + chunk_size]).strip()
        if not window:
            continue
        chunks.append(
            Chunk(
                text=window,
                start_index=offset,
                word_count=min(chunk_size, n - offset),
            )
        )
        if offset + chunk_size >= n:
            break
    return chunks
