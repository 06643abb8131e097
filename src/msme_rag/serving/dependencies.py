"""Service wiring for the HTTP layer.

The application owns one :class:`ServiceContainer`; tests pass their own
container of fakes to :func:`~msme_rag.serving.app.create_app`.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from fastapi import Request

from msme_rag.agent.graph import RAGOrchestrator
from msme_rag.agent.llm import Generator
from msme_rag.config import Settings, settings
from msme_rag.ingestion.embedder import Embedder
from msme_rag.ingestion.pipeline import IngestionPipeline
from msme_rag.records.base import ConversationStore, DocumentRegistry
from msme_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)

_build_lock = threading.Lock()


@dataclass
class ServiceContainer:
    """Collaborators shared by all requests, plus the two pipelines built from them."""

    embedder: Embedder
    store: VectorStoreBase
    documents: DocumentRegistry
    conversations: ConversationStore
    generator: Generator
    chunk_size: int = settings.chunk_size
    match_threshold: float = settings.match_threshold
    match_count: int = settings.match_count
    ingest_max_workers: int = settings.ingest_max_workers
    pipeline: IngestionPipeline = field(init=False)
    orchestrator: RAGOrchestrator = field(init=False)

    def __post_init__(self) -> None:
        self.pipeline = IngestionPipeline(
            self.embedder,
            self.store,
            self.documents,
            chunk_size=self.chunk_size,
            max_workers=self.ingest_max_workers,
        )
        self.orchestrator = RAGOrchestrator(
            self.embedder,
            self.store,
            self.conversations,
            self.generator,
            threshold=self.match_threshold,
            limit=self.match_count,
        )


def build_services(config: Settings = settings) -> ServiceContainer:
    """Build the production container: HF embeddings, Chroma, SQL records, OpenAI-compatible LLM."""
    from msme_rag.records.sql_store import SqlRecordStore
    from msme_rag.retrieval.chroma_store import ChromaVectorStore

    logger.info(
        "Building services (chroma=%s:%d/%s, database=%s)",
        config.chroma_host,
        config.chroma_port,
        config.chroma_collection,
        config.database_url,
    )
    records = SqlRecordStore.from_url(config.database_url)
    return ServiceContainer(
        embedder=Embedder(model_name=config.embedding_model),
        store=ChromaVectorStore(config.chroma_collection, host=config.chroma_host, port=config.chroma_port),
        documents=records,
        conversations=records,
        generator=Generator(),
        chunk_size=config.chunk_size,
        match_threshold=config.match_threshold,
        match_count=config.match_count,
        ingest_max_workers=config.ingest_max_workers,
    )


def get_services(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the app's container, building it on first use."""
    state = request.app.state
    if state.services is None:
        with _build_lock:
            if state.services is None:
                state.services = build_services()
    return state.services
