"""Abstract base class for vector-store backends.

Adding a new backend (pgvector, Qdrant, …) only requires subclassing
:class:`VectorStoreBase` and implementing the three abstract methods.
Ingestion and the answer graph are backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from msme_rag.models import Chunk, ScoredChunk

DEFAULT_MATCH_THRESHOLD = 0.5
DEFAULT_MATCH_COUNT = 5


class VectorStoreBase(ABC):
    """Backend-agnostic chunk store with nearest-neighbour search.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / table / index.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def upsert_chunk(self, chunk: Chunk) -> str:
        """Persist *chunk* with its embedding and provenance; return its id.

        Each call is an independent unit of work and must be safe to run
        concurrently with other calls.

        Raises
        ------
        PersistenceError
            When the backend rejects the write.
        """
        ...

    @abstractmethod
    def search(
        self,
        query_embedding: list[float],
        *,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        limit: int = DEFAULT_MATCH_COUNT,
    ) -> list[ScoredChunk]:
        """Return at most *limit* chunks with similarity ``>= threshold``.

        Results are sorted by similarity, highest first, ties broken by
        chunk id. An empty list is a valid answer.

        Raises
        ------
        RetrievalError
            When the backend cannot be queried.
        """
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...


def rank_hits(hits: Iterable[ScoredChunk], *, threshold: float, limit: int) -> list[ScoredChunk]:
    """Apply the threshold, the deterministic ordering and the result cap."""
    if limit <= 0:
        return []
    kept = [hit for hit in hits if hit.similarity >= threshold]
    kept.sort(key=lambda hit: (-hit.similarity, hit.chunk.id))
    return kept[:limit]
