"""Unit tests for the vector-store layer: ranking, in-memory store, Chroma adapter."""

from __future__ import annotations

import math
from unittest.mock import MagicMock

import pytest

from msme_rag.errors import PersistenceError, RetrievalError
from msme_rag.models import Chunk, ScoredChunk
from msme_rag.retrieval.base import rank_hits
from msme_rag.retrieval.memory_store import InMemoryVectorStore, cosine_similarity


def _unit(*values: float) -> list[float]:
    norm = math.sqrt(sum(v * v for v in values))
    return [v / norm for v in values]


def _chunk(chunk_id: str, embedding: list[float], *, document_id: str = "doc-1", index: int = 0) -> Chunk:
    return Chunk(
        id=chunk_id,
        document_id=document_id,
        text=f"text of {chunk_id}",
        chunk_index=index,
        page_number=1,
        embedding=embedding,
    )


def _hit(chunk_id: str, similarity: float) -> ScoredChunk:
    return ScoredChunk(chunk=_chunk(chunk_id, [1.0, 0.0]), similarity=similarity)


# ── rank_hits ───────────────────────────────────────────────────────────


class TestRankHits:
    def test_threshold_is_inclusive(self) -> None:
        hits = [_hit("a", 0.5), _hit("b", 0.49)]
        assert [h.chunk.id for h in rank_hits(hits, threshold=0.5, limit=5)] == ["a"]

    def test_sorted_descending(self) -> None:
        hits = [_hit("a", 0.6), _hit("b", 0.9), _hit("c", 0.7)]
        assert [h.similarity for h in rank_hits(hits, threshold=0.0, limit=5)] == [0.9, 0.7, 0.6]

    def test_ties_broken_by_chunk_id(self) -> None:
        hits = [_hit("c", 0.8), _hit("a", 0.8), _hit("b", 0.8)]
        assert [h.chunk.id for h in rank_hits(hits, threshold=0.5, limit=5)] == ["a", "b", "c"]

    def test_limit_caps_results(self) -> None:
        hits = [_hit(str(i), 0.9 - i / 100) for i in range(10)]
        assert len(rank_hits(hits, threshold=0.5, limit=5)) == 5

    def test_non_positive_limit_returns_nothing(self) -> None:
        assert rank_hits([_hit("a", 0.99)], threshold=0.5, limit=0) == []


# ── InMemoryVectorStore ─────────────────────────────────────────────────


class TestInMemoryVectorStore:
    def test_cosine_similarity(self) -> None:
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0

    def test_empty_store_returns_empty_list(self, vector_store: InMemoryVectorStore) -> None:
        assert vector_store.search([1.0, 0.0], threshold=0.5, limit=5) == []

    def test_search_scores_and_filters(self, vector_store: InMemoryVectorStore) -> None:
        vector_store.upsert_chunk(_chunk("close", _unit(1.0, 0.1)))
        vector_store.upsert_chunk(_chunk("mid", _unit(0.62, math.sqrt(1 - 0.62**2))))
        vector_store.upsert_chunk(_chunk("far", _unit(0.1, 1.0)))

        hits = vector_store.search([1.0, 0.0], threshold=0.5, limit=5)

        assert [h.chunk.id for h in hits] == ["close", "mid"]
        assert hits[1].similarity == pytest.approx(0.62)
        assert all(h.similarity >= 0.5 for h in hits)

    def test_search_respects_limit(self, vector_store: InMemoryVectorStore) -> None:
        for i in range(8):
            vector_store.upsert_chunk(_chunk(f"c{i}", _unit(1.0, i / 10), index=i))
        hits = vector_store.search([1.0, 0.0], threshold=0.5, limit=5)
        assert [h.chunk.id for h in hits] == ["c0", "c1", "c2", "c3", "c4"]

    def test_hit_converts_to_source(self, vector_store: InMemoryVectorStore) -> None:
        vector_store.upsert_chunk(_chunk("only", [1.0, 0.0], document_id="doc-9"))
        source = vector_store.search([1.0, 0.0])[0].to_source()
        assert source.document_id == "doc-9"
        assert source.chunk_id == "only"
        assert source.page_number == 1
        assert source.similarity == pytest.approx(1.0)

    def test_dimension_fixed_by_first_insert(self, vector_store: InMemoryVectorStore) -> None:
        vector_store.upsert_chunk(_chunk("a", [1.0, 0.0]))
        with pytest.raises(PersistenceError, match="dimension"):
            vector_store.upsert_chunk(_chunk("b", [1.0, 0.0, 0.0]))

    def test_query_dimension_mismatch(self, vector_store: InMemoryVectorStore) -> None:
        vector_store.upsert_chunk(_chunk("a", [1.0, 0.0]))
        with pytest.raises(RetrievalError):
            vector_store.search([1.0, 0.0, 0.0])

    def test_chunk_without_embedding_rejected(self, vector_store: InMemoryVectorStore) -> None:
        with pytest.raises(PersistenceError, match="no embedding"):
            vector_store.upsert_chunk(_chunk("a", []))

    def test_chunks_for_document_in_index_order(self, vector_store: InMemoryVectorStore) -> None:
        vector_store.upsert_chunk(_chunk("x", [1.0, 0.0], index=2))
        vector_store.upsert_chunk(_chunk("y", [1.0, 0.0], index=0))
        vector_store.upsert_chunk(_chunk("z", [1.0, 0.0], index=1, document_id="other"))
        assert [c.chunk_index for c in vector_store.chunks_for_document("doc-1")] == [0, 2]
        assert len(vector_store) == 3


# ── ChromaVectorStore ───────────────────────────────────────────────────


class TestChromaVectorStore:
    @pytest.fixture(autouse=True)
    def _skip_if_chroma_broken(self) -> None:
        """Skip if chromadb can't be imported."""
        try:
            from msme_rag.retrieval.chroma_store import ChromaVectorStore  # noqa: F401
        except Exception:
            pytest.skip("chromadb not importable in this environment")

    @pytest.fixture()
    def client(self) -> MagicMock:
        return MagicMock()

    def _store(self, client: MagicMock):  # noqa: ANN202
        from msme_rag.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore("test-chunks", client=client)

    def test_collection_uses_cosine_space(self, client: MagicMock) -> None:
        self._store(client)
        client.get_or_create_collection.assert_called_once_with(
            name="test-chunks", metadata={"hnsw:space": "cosine"}
        )

    def test_metadata_round_trip(self) -> None:
        from msme_rag.retrieval.chroma_store import _chunk_from_hit, _chunk_to_metadata

        chunk = Chunk(
            id="c-1",
            document_id="doc-1",
            text="Udyam registration",
            chunk_index=3,
            page_number=2,
            embedding=[1.0, 0.0],
            metadata={"char_count": 18, "nested": {"dropped": True}},
        )
        meta = _chunk_to_metadata(chunk)
        assert meta["document_id"] == "doc-1"
        assert meta["chunk_index"] == 3
        assert meta["page_number"] == 2
        assert "nested" not in meta

        restored = _chunk_from_hit("c-1", "Udyam registration", meta)
        assert restored.document_id == "doc-1"
        assert restored.chunk_index == 3
        assert restored.page_number == 2
        assert restored.created_at == chunk.created_at
        assert restored.metadata == {"char_count": 18}

    def test_upsert_sends_embedding_and_provenance(self, client: MagicMock) -> None:
        store = self._store(client)
        collection = client.get_or_create_collection.return_value
        store.upsert_chunk(_chunk("c-1", [1.0, 0.0]))
        kwargs = collection.upsert.call_args.kwargs
        assert kwargs["ids"] == ["c-1"]
        assert kwargs["embeddings"] == [[1.0, 0.0]]
        assert kwargs["metadatas"][0]["document_id"] == "doc-1"

    def test_upsert_failure_becomes_persistence_error(self, client: MagicMock) -> None:
        store = self._store(client)
        client.get_or_create_collection.return_value.upsert.side_effect = RuntimeError("disk full")
        with pytest.raises(PersistenceError, match="disk full"):
            store.upsert_chunk(_chunk("c-1", [1.0, 0.0]))

    def test_search_converts_distance_and_filters(self, client: MagicMock) -> None:
        store = self._store(client)
        collection = client.get_or_create_collection.return_value
        collection.count.return_value = 3
        collection.query.return_value = {
            "ids": [["b", "a", "c"]],
            "documents": [["text b", "text a", "text c"]],
            "metadatas": [[
                {"document_id": "doc-1", "chunk_index": 1, "page_number": 1},
                {"document_id": "doc-1", "chunk_index": 0, "page_number": 1},
                {"document_id": "doc-2", "chunk_index": 0, "page_number": 4},
            ]],
            "distances": [[0.2, 0.2, 0.7]],
        }

        hits = store.search([1.0, 0.0], threshold=0.5, limit=5)

        assert [h.chunk.id for h in hits] == ["a", "b"]
        assert hits[0].similarity == pytest.approx(0.8)
        assert collection.query.call_args.kwargs["n_results"] == 3

    @pytest.mark.parametrize(
        "meta",
        [
            {"document_id": "doc-1", "chunk_index": "not-a-number", "page_number": 1},
            {"document_id": "doc-1", "chunk_index": 0, "page_number": 1, "created_at": "yesterday"},
        ],
    )
    def test_malformed_hit_becomes_retrieval_error(self, client: MagicMock, meta: dict) -> None:
        store = self._store(client)
        collection = client.get_or_create_collection.return_value
        collection.count.return_value = 1
        collection.query.return_value = {
            "ids": [["a"]],
            "documents": [["text a"]],
            "metadatas": [[meta]],
            "distances": [[0.1]],
        }
        with pytest.raises(RetrievalError):
            store.search([1.0, 0.0])

    def test_search_on_empty_collection(self, client: MagicMock) -> None:
        store = self._store(client)
        client.get_or_create_collection.return_value.count.return_value = 0
        assert store.search([1.0, 0.0]) == []
        client.get_or_create_collection.return_value.query.assert_not_called()

    def test_search_failure_becomes_retrieval_error(self, client: MagicMock) -> None:
        store = self._store(client)
        client.get_or_create_collection.return_value.count.side_effect = ConnectionError("refused")
        with pytest.raises(RetrievalError, match="refused"):
            store.search([1.0, 0.0])

    def test_health_check(self, client: MagicMock) -> None:
        store = self._store(client)
        assert store.health_check() is True
        client.heartbeat.side_effect = ConnectionError("down")
        assert store.health_check() is False
