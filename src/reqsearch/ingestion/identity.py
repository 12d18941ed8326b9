"""Chunk identifiers derived from source location."""

from __future__ import annotations

from reqsearch.ingestion.models import ExtractedUnit


def chunk_id(unit: ExtractedUnit, index: int) -> str:
    """Return the store ID for chunk *index* of *unit*.

    Spreadsheet rows carry sheet and row so a hit can be traced back to the
    cell range; everything else is keyed by file name.  IDs are unique
    within one indexing run of one file, not across runs.
    """
    if unit.sheet:
        return f"{unit.file_name}_{unit.sheet}_row{unit.row}_chunk{index}"
    return f"{unit.file_name}_chunk_{index}"
