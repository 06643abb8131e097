"""
Retrieval — chunk persistence and nearest-neighbour search.

This module wraps the vector store behind a clean interface so that
ingestion and the answer graph never need to know which DB is backing
retrieval.

Public surface
--------------
- :class:`VectorStoreBase` — abstract backend contract.
- :class:`InMemoryVectorStore` — brute-force cosine store for local runs.
- :class:`ChromaVectorStore` — default Chroma backend.
"""

from msme_rag.retrieval.base import (
    DEFAULT_MATCH_COUNT,
    DEFAULT_MATCH_THRESHOLD,
    VectorStoreBase,
    rank_hits,
)
from msme_rag.retrieval.memory_store import InMemoryVectorStore

__all__ = [
    "ChromaVectorStore",
    "DEFAULT_MATCH_COUNT",
    "DEFAULT_MATCH_THRESHOLD",
    "InMemoryVectorStore",
    "VectorStoreBase",
    "rank_hits",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from msme_rag.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
