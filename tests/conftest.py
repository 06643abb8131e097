"""Shared pytest configuration and fixtures.

Every collaborator is replaced by a deterministic in-process fake so the
suite runs without HuggingFace models, Chroma, or an LLM endpoint.
"""

from __future__ import annotations

import hashlib
import math
import threading

import pytest
from langchain_core.embeddings import Embeddings

from msme_rag.agent.llm import Generator
from msme_rag.errors import GenerationError
from msme_rag.ingestion.embedder import Embedder
from msme_rag.records.memory import InMemoryConversationStore, InMemoryDocumentRegistry
from msme_rag.retrieval.memory_store import InMemoryVectorStore

DIMENSION = 8


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


def hashed_vector(text: str, dimension: int = DIMENSION) -> list[float]:
    """Deterministic unit vector derived from the SHA-256 of *text*."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = [digest[i] - 127.5 for i in range(dimension)]
    norm = math.sqrt(sum(v * v for v in raw))
    return [v / norm for v in raw]


class KeyedEmbeddings(Embeddings):
    """Embeddings fake: pinned vectors for chosen texts, hashed vectors otherwise.

    Texts listed in ``failing`` raise, simulating an unreachable model.
    """

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        *,
        failing: set[str] | None = None,
        dimension: int = DIMENSION,
    ) -> None:
        self.vectors = dict(vectors or {})
        self.failing = set(failing or ())
        self.dimension = dimension
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        out: list[list[float]] = []
        for text in texts:
            with self._lock:
                self.calls.append(text)
            if text in self.failing:
                raise RuntimeError("inference endpoint unreachable")
            out.append(self.vectors.get(text) or hashed_vector(text, self.dimension))
        return out

    def embed_query(self, text: str) -> list[float]:
        return self.embed_documents([text])[0]


class FakeGenerator(Generator):
    """Generator fake that records prompts and returns a scripted reply."""

    def __init__(self, reply: str = "Registration is free of cost.", *, fail: bool = False) -> None:
        super().__init__(llm=None)
        self.reply = reply
        self.fail = fail
        self.calls: list[tuple[str, str]] = []

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.fail:
            raise GenerationError("model overloaded")
        return self.reply


@pytest.fixture()
def embeddings() -> KeyedEmbeddings:
    return KeyedEmbeddings()


@pytest.fixture()
def embedder(embeddings: KeyedEmbeddings) -> Embedder:
    return Embedder(embeddings, model_name="fake-gte-small")


@pytest.fixture()
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture()
def documents() -> InMemoryDocumentRegistry:
    return InMemoryDocumentRegistry()


@pytest.fixture()
def conversations() -> InMemoryConversationStore:
    return InMemoryConversationStore()


@pytest.fixture()
def generator() -> FakeGenerator:
    return FakeGenerator()
