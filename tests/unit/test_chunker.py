"""Unit tests for the chunker module."""

import pytest

from msme_rag.ingestion.chunker import chunk_text, iter_chunks


def test_concatenation_reproduces_input() -> None:
    """Joining the chunks in order gives back the original text exactly."""
    text = "MSME Udyam registration is free.\n\n" * 40 + "తెలుగు పాఠ్యం " * 30
    chunks = chunk_text(text, chunk_size=97)
    assert "".join(chunks) == text


def test_every_chunk_respects_the_bound() -> None:
    text = "x" * 1234
    chunks = chunk_text(text, chunk_size=100)
    assert all(len(c) <= 100 for c in chunks)
    assert all(len(c) == 100 for c in chunks[:-1])


def test_1200_characters_make_three_chunks() -> None:
    chunks = chunk_text("a" * 1200)
    assert [len(c) for c in chunks] == [500, 500, 200]


def test_short_text_is_a_single_chunk() -> None:
    assert chunk_text("Short text.") == ["Short text."]


def test_text_of_exactly_chunk_size_is_a_single_chunk() -> None:
    text = "b" * 500
    assert chunk_text(text) == [text]


def test_empty_input() -> None:
    """An empty string should return an empty list."""
    assert chunk_text("") == []


def test_no_semantic_splitting() -> None:
    """Boundaries fall on character counts, even mid-word."""
    assert chunk_text("hello world", chunk_size=4) == ["hell", "o wo", "rld"]


def test_iter_chunks_is_restartable() -> None:
    text = "abcdefghij"
    assert list(iter_chunks(text, 3)) == list(iter_chunks(text, 3)) == ["abc", "def", "ghi", "j"]


@pytest.mark.parametrize("size", [0, -5])
def test_non_positive_chunk_size_rejected(size: int) -> None:
    with pytest.raises(ValueError, match="chunk_size"):
        chunk_text("text", chunk_size=size)
