"""Unit tests for the chunker module."""

import math

import pytest

from reqsearch.errors import ConfigurationError
from reqsearch.ingestion.chunker import chunk_text


def _words(n: int) -> str:
    return " ".join(f"w{i}" for i in range(n))


def test_exact_chunk_size_yields_single_chunk() -> None:
    """500 words with defaults is exactly one full window."""
    chunks = chunk_text(_words(500))
    assert len(chunks) == 1
    assert chunks[0].start_index == 0
    assert chunks[0].word_count == 500


def test_560_words_produces_two_windows() -> None:
    chunks = chunk_text(_words(560), chunk_size=500, overlap=50)
    assert [c.start_index for c in chunks] == [0, 450]
    assert chunks[1].word_count == 110
    assert chunks[1].text.split()[0] == "w450"
    assert chunks[1].text.split()[-1] == "w559"


def test_empty_input() -> None:
    """Blank text yields no chunks."""
    assert chunk_text("") == []
    assert chunk_text("   \n\t  ") == []


def test_collapses_whitespace_inside_window() -> None:
    chunks = chunk_text("alpha\n\n  beta\tgamma", chunk_size=10, overlap=0)
    assert chunks[0].text == "alpha beta gamma"


@pytest.mark.parametrize(
    ("chunk_size", "overlap"),
    [(100, 100), (100, 150), (0, 0), (10, -1)],
)
def test_invalid_parameters_raise(chunk_size: int, overlap: int) -> None:
    with pytest.raises(ConfigurationError):
        chunk_text("some words here", chunk_size=chunk_size, overlap=overlap)


@pytest.mark.parametrize("n", [1, 7, 10, 11, 19, 20, 37, 100])
def test_windows_cover_every_word(n: int) -> None:
    chunks = chunk_text(_words(n), chunk_size=10, overlap=3)
    covered = set()
    for c in chunks:
        covered.update(range(c.start_index, c.start_index + c.word_count))
    assert covered == set(range(n))


@pytest.mark.parametrize("n", [25, 40, 101])
def test_consecutive_chunks_share_exactly_overlap_words(n: int) -> None:
    overlap = 4
    chunks = chunk_text(_words(n), chunk_size=12, overlap=overlap)
    for left, right in zip(chunks, chunks[1:]):
        assert left.text.split()[-overlap:] == right.text.split()[:overlap]
        assert right.start_index - left.start_index == 12 - overlap


@pytest.mark.parametrize("n", [0, 1, 3, 5, 6, 12, 13, 50, 99])
def test_chunk_count_bound(n: int) -> None:
    chunk_size, overlap = 6, 2
    stride = chunk_size - overlap
    chunks = chunk_text(_words(n), chunk_size=chunk_size, overlap=overlap)
    if n == 0:
        expected = 0
    elif n > overlap:
        expected = math.ceil((n - overlap) / stride)
    else:
        expected = 1
    assert len(chunks) == expected


def test_word_count_matches_text() -> None:
    for c in chunk_text(_words(23), chunk_size=10, overlap=1):
        assert c.word_count == len(c.text.split())
