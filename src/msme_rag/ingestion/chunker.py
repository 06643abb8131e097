"""Fixed-size text chunking."""

from __future__ import annotations

from collections.abc import Iterator

DEFAULT_CHUNK_SIZE = 500


def iter_chunks(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[str]:
    """Yield consecutive, non-overlapping slices of *text*.

    Every slice is exactly ``chunk_size`` characters except possibly the
    last. Concatenating the slices in order reproduces *text*.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be a positive integer, got {chunk_size}")
    for start in range(0, len(text), chunk_size):
        yield text[start : start + chunk_size]


def chunk_text(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """Split *text* into bounded-size units for embedding.

    Boundaries fall purely on character counts; no sentence or paragraph
    detection is attempted, so the output is fully determined by *text*
    and *chunk_size*.

    Parameters
    ----------
    text:
        Extracted text of one page or of a whole document.
    chunk_size:
        Maximum number of characters per chunk.

    Returns
    -------
    list[str]
        Ordered chunks; empty when *text* is empty.
    """
    return list(iter_chunks(text, chunk_size))
