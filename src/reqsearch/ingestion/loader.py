"""Document extractors — thin wrappers around LangChain loaders, openpyxl and xlrd."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

import xlrd
from langchain_community.document_loaders import Docx2txtLoader, PyPDFLoader, TextLoader
from openpyxl import load_workbook

from reqsearch.errors import ExtractionError, UnsupportedFormatError
from reqsearch.ingestion.models import ExtractedUnit
from reqsearch.retrieval.models import DocumentType, ExcelRowSource, TextFileSource

logger = logging.getLogger(__name__)

CELL_SEPARATOR = " | "


def load_pdf(path: Path) -> list[ExtractedUnit]:
    """Load a PDF as one unit; pages are joined with newlines."""
    pages = PyPDFLoader(str(path)).load()
    text = "\n".join(page.page_content for page in pages)
    return [_file_unit(path, text, DocumentType.PDF)]


def load_docx(path: Path) -> list[ExtractedUnit]:
    """Load the raw text of a Word document as one unit."""
    docs = Docx2txtLoader(str(path)).load()
    text = "\n".join(doc.page_content for doc in docs)
    return [_file_unit(path, text, DocumentType.DOCX)]


def load_text(path: Path) -> list[ExtractedUnit]:
    """Load a UTF-8 text or Markdown file as one unit."""
    docs = TextLoader(str(path), encoding="utf-8").load()
    text = "\n".join(doc.page_content for doc in docs)
    return [_file_unit(path, text, DocumentType.TEXT)]


def _row_units(path: Path, sheet_name: str, rows: Iterable[Sequence[Any]]) -> list[ExtractedUnit]:
    """One unit per row that has at least one non-empty cell.

    Cell values are joined with ``" | "``; row numbers are 1-based.
    """
    units: list[ExtractedUnit] = []
    for row_number, values in enumerate(rows, start=1):
        cells = [_cell_text(v) for v in values if v is not None and v != ""]
        if not cells:
            continue
        units.append(
            ExtractedUnit(
                text=CELL_SEPARATOR.join(cells),
                source=ExcelRowSource(
                    file_name=path.name,
                    file_path=str(path),
                    sheet=sheet_name,
                    row=row_number,
                ),
            )
        )
    return units


def _cell_text(value: Any) -> str:
    # xlrd reports every number as float
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def load_excel(path: Path) -> list[ExtractedUnit]:
    """Load an ``.xlsx``/``.xlsm`` workbook, one unit per non-empty row of every sheet."""
    workbook = load_workbook(str(path), read_only=True, data_only=True)
    units: list[ExtractedUnit] = []
    try:
        for sheet in workbook.worksheets:
            units.extend(_row_units(path, sheet.title, sheet.iter_rows(min_row=1, values_only=True)))
    finally:
        workbook.close()
    return units


def load_legacy_excel(path: Path) -> list[ExtractedUnit]:
    """Load a legacy binary ``.xls`` workbook the same way as :func:`load_excel`."""
    book = xlrd.open_workbook(str(path), on_demand=True)
    units: list[ExtractedUnit] = []
    try:
        for index in range(book.nsheets):
            sheet = book.sheet_by_index(index)
            rows = (sheet.row_values(r) for r in range(sheet.nrows))
            units.extend(_row_units(path, sheet.name, rows))
    finally:
        book.release_resources()
    return units


LOADERS: dict[str, Callable[[Path], list[ExtractedUnit]]] = {
    ".pdf": load_pdf,
    ".docx": load_docx,
    ".xlsx": load_excel,
    ".xlsm": load_excel,
    ".xls": load_legacy_excel,
    ".txt": load_text,
    ".md": load_text,
}


def extract_units(path: str | Path) -> list[ExtractedUnit]:
    """Extract text units from *path* using the loader for its extension.

    Raises
    ------
    UnsupportedFormatError
        If no loader is registered for the extension.
    ExtractionError
        If the file cannot be read or parsed.
    """
    path = Path(path)
    ext = path.suffix.lower()
    loader = LOADERS.get(ext)
    if loader is None:
        raise UnsupportedFormatError(f"Unsupported file format: {ext or path.name}", path=str(path))
    try:
        return loader(path)
    except Exception as exc:
        logger.error("Error processing file %s: %s", path, exc)
        raise ExtractionError(f"Could not extract text from {path.name}: {exc}", path=str(path)) from exc


def discover_files(directory: str | Path, recursive: bool = False, file_types: str | list[str] = "") -> list[Path]:
    """Find files under *directory* whose extension is in *file_types*.

    Parameters
    ----------
    directory:
        Root directory to scan.
    recursive:
        Also scan subdirectories.
    file_types:
        Comma-separated string or list of extensions, without dots.

    Returns
    -------
    list[Path]
        Unique regular files, sorted by path.
    """
    if isinstance(file_types, str):
        file_types = file_types.split(",")
    extensions = {f".{ext.strip().lower().lstrip('.')}" for ext in file_types if ext.strip()}

    root = Path(directory)
    candidates = root.rglob("*") if recursive else root.glob("*")
    found = {p.resolve() for p in candidates if p.suffix.lower() in extensions and p.is_file()}
    return sorted(found)


def _file_unit(path: Path, text: str, doc_type: DocumentType) -> ExtractedUnit:
    return ExtractedUnit(
        text=text,
        source=TextFileSource(file_name=path.name, file_path=str(path), type=doc_type),
    )
