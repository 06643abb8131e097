"""Chroma implementation of the vector-store abstraction.

The collection is created with cosine space, so Chroma's distances are
``1 - cosine_similarity`` and convert back to the similarity the rest of
the system ranks by.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import chromadb

from msme_rag.config import settings
from msme_rag.errors import PersistenceError, RetrievalError
from msme_rag.models import Chunk, ScoredChunk
from msme_rag.retrieval.base import (
    DEFAULT_MATCH_COUNT,
    DEFAULT_MATCH_THRESHOLD,
    VectorStoreBase,
    rank_hits,
)

logger = logging.getLogger(__name__)

_PROVENANCE_KEYS = ("document_id", "chunk_index", "page_number", "created_at")


def _chunk_to_metadata(chunk: Chunk) -> dict[str, Any]:
    """Flatten provenance and user metadata into Chroma's scalar-only format."""
    meta: dict[str, Any] = {}
    for key, value in chunk.metadata.items():
        if key in _PROVENANCE_KEYS:
            continue
        # Chroma metadata values must be flat str/int/float/bool
        if isinstance(value, (str, int, float, bool)):
            meta[key] = value
    meta.update(
        document_id=chunk.document_id,
        chunk_index=chunk.chunk_index,
        page_number=chunk.page_number,
        created_at=chunk.created_at.isoformat(),
    )
    return meta


def _chunk_from_hit(chunk_id: str, text: str | None, meta: dict[str, Any] | None) -> Chunk:
    meta = dict(meta or {})
    created_at = meta.pop("created_at", None)
    extra: dict[str, Any] = {
        "id": chunk_id,
        "document_id": str(meta.pop("document_id", "")),
        "chunk_index": int(meta.pop("chunk_index", 0)),
        "page_number": int(meta.pop("page_number", 1)),
        "text": text or "",
        "metadata": meta,
    }
    if created_at:
        extra["created_at"] = datetime.fromisoformat(created_at)
    return Chunk(**extra)


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    host:
        Chroma server hostname.
    port:
        Chroma server port.
    client:
        Pre-built Chroma client (e.g. ``chromadb.EphemeralClient()``);
        overrides *host* / *port*.
    """

    def __init__(
        self,
        collection_name: str = settings.chroma_collection,
        *,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
        client: Any | None = None,
    ) -> None:
        super().__init__(collection_name)
        self._client = client if client is not None else chromadb.HttpClient(host=host, port=port)
        self._collection = self._client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    # -- VectorStoreBase overrides --------------------------------------------

    def upsert_chunk(self, chunk: Chunk) -> str:
        if not chunk.embedding:
            raise PersistenceError(f"Chunk {chunk.id} has no embedding")
        try:
            self._collection.upsert(
                ids=[chunk.id],
                embeddings=[chunk.embedding],
                documents=[chunk.text],
                metadatas=[_chunk_to_metadata(chunk)],
            )
        except Exception as exc:
            raise PersistenceError(f"Chroma upsert failed for chunk {chunk.id}: {exc}", cause=exc) from exc
        logger.debug("Upserted chunk %s (document=%s, index=%d)", chunk.id, chunk.document_id, chunk.chunk_index)
        return chunk.id

    def search(
        self,
        query_embedding: list[float],
        *,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        limit: int = DEFAULT_MATCH_COUNT,
    ) -> list[ScoredChunk]:
        if limit <= 0:
            return []
        try:
            available = self._collection.count()
            if available == 0:
                return []
            results = self._collection.query(
                query_embeddings=[query_embedding],
                n_results=min(limit, available),
                include=["documents", "metadatas", "distances"],
            )
            ids = (results.get("ids") or [[]])[0]
            docs = (results.get("documents") or [[]])[0]
            metas = (results.get("metadatas") or [[]])[0]
            distances = (results.get("distances") or [[]])[0]

            hits = [
                ScoredChunk(chunk=_chunk_from_hit(chunk_id, text, meta), similarity=1.0 - float(dist))
                for chunk_id, text, meta, dist in zip(ids, docs, metas, distances)
            ]
        except Exception as exc:
            raise RetrievalError(f"Chroma query failed: {exc}", cause=exc) from exc
        return rank_hits(hits, threshold=threshold, limit=limit)

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False
