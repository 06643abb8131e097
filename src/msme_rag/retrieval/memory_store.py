"""In-process vector store for local development and tests."""

from __future__ import annotations

import logging
import math
import threading

from msme_rag.errors import PersistenceError, RetrievalError
from msme_rag.models import Chunk, ScoredChunk
from msme_rag.retrieval.base import (
    DEFAULT_MATCH_COUNT,
    DEFAULT_MATCH_THRESHOLD,
    VectorStoreBase,
    rank_hits,
)

logger = logging.getLogger(__name__)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemoryVectorStore(VectorStoreBase):
    """Brute-force cosine search over chunks held in a dict.

    All chunks must share one embedding dimension, fixed by the first
    insert.
    """

    def __init__(self, collection_name: str = "document_chunks") -> None:
        super().__init__(collection_name)
        self._chunks: dict[str, Chunk] = {}
        self._dimension: int | None = None
        self._lock = threading.Lock()

    def upsert_chunk(self, chunk: Chunk) -> str:
        if not chunk.embedding:
            raise PersistenceError(f"Chunk {chunk.id} has no embedding")
        with self._lock:
            if self._dimension is None:
                self._dimension = len(chunk.embedding)
            elif len(chunk.embedding) != self._dimension:
                raise PersistenceError(
                    f"Chunk {chunk.id} has dimension {len(chunk.embedding)}, "
                    f"store holds dimension {self._dimension}"
                )
            self._chunks[chunk.id] = chunk
        return chunk.id

    def search(
        self,
        query_embedding: list[float],
        *,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        limit: int = DEFAULT_MATCH_COUNT,
    ) -> list[ScoredChunk]:
        with self._lock:
            chunks = list(self._chunks.values())
            dimension = self._dimension
        if dimension is not None and len(query_embedding) != dimension:
            raise RetrievalError(
                f"Query dimension {len(query_embedding)} does not match store dimension {dimension}"
            )
        hits = (
            ScoredChunk(chunk=chunk, similarity=cosine_similarity(query_embedding, chunk.embedding))
            for chunk in chunks
        )
        return rank_hits(hits, threshold=threshold, limit=limit)

    def health_check(self) -> bool:
        return True

    def get_chunk(self, chunk_id: str) -> Chunk | None:
        with self._lock:
            return self._chunks.get(chunk_id)

    def chunks_for_document(self, document_id: str) -> list[Chunk]:
        """Return the stored chunks of one document in ``chunk_index`` order."""
        with self._lock:
            owned = [c for c in self._chunks.values() if c.document_id == document_id]
        return sorted(owned, key=lambda c: c.chunk_index)

    def __len__(self) -> int:
        with self._lock:
            return len(self._chunks)
