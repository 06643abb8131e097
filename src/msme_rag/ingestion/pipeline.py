"""Ingestion pipeline: chunk → embed → upsert, one independent unit per chunk.

Document status moves ``pending → processing`` before the first chunk is
embedded, then to a terminal status once every chunk has been attempted.
A chunk that fails is logged and skipped; the rest of the document still
lands in the vector store.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Union

from msme_rag.config import settings
from msme_rag.errors import PersistenceError, ValidationError
from msme_rag.ingestion.chunker import chunk_text
from msme_rag.ingestion.embedder import Embedder
from msme_rag.models import Chunk, Document, DocumentLanguage, DocumentStatus
from msme_rag.records.base import DocumentRegistry
from msme_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)

_TERMINAL_STATUS_ATTEMPTS = 2


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Completed:
    """Every chunk was embedded and stored."""

    document_id: str
    chunk_count: int

    @property
    def status(self) -> DocumentStatus:
        return DocumentStatus.COMPLETED


@dataclass(frozen=True)
class CompletedWithErrors:
    """All chunks were attempted but ``failed_chunk_count`` of them were not stored."""

    document_id: str
    chunk_count: int
    failed_chunk_count: int

    @property
    def status(self) -> DocumentStatus:
        return DocumentStatus.COMPLETED_WITH_ERRORS


@dataclass(frozen=True)
class Failed:
    """Ingestion could not begin."""

    document_id: str
    reason: str

    @property
    def status(self) -> DocumentStatus:
        return DocumentStatus.FAILED


IngestionOutcome = Union[Completed, CompletedWithErrors, Failed]


@dataclass(frozen=True)
class _ChunkTask:
    chunk_index: int
    page_number: int
    text: str


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class IngestionPipeline:
    """Orchestrate Chunker → Embedder → vector store for documents.

    Parameters
    ----------
    embedder:
        Shared embedder; the query path must use the same instance settings.
    store:
        Destination vector store.
    documents:
        Registry holding document records and their status.
    chunk_size:
        Maximum characters per chunk.
    max_workers:
        Number of chunks embedded and stored concurrently.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStoreBase,
        documents: DocumentRegistry,
        *,
        chunk_size: int = settings.chunk_size,
        max_workers: int = settings.ingest_max_workers,
    ) -> None:
        self._embedder = embedder
        self._store = store
        self._documents = documents
        self.chunk_size = chunk_size
        self.max_workers = max(1, max_workers)

    # -- single chunk ---------------------------------------------------------

    def ingest_chunk(
        self,
        document_id: str,
        text: str,
        *,
        page_number: int = 1,
        chunk_index: int = 0,
    ) -> Chunk:
        """Embed one pre-cut chunk and store it.

        Raises
        ------
        ValidationError
            When *document_id* or *text* is empty.
        EmbeddingUnavailable, PersistenceError
            Propagated from the embedder or the store.
        """
        if not document_id or not text:
            raise ValidationError("Missing required fields")
        embedding = self._embedder.embed(text)
        chunk = Chunk(
            document_id=document_id,
            text=text,
            chunk_index=chunk_index,
            page_number=page_number,
            embedding=embedding,
            metadata={"char_count": len(text), "embedding_model": self._embedder.model_name},
        )
        self._store.upsert_chunk(chunk)
        return chunk

    # -- whole document -------------------------------------------------------

    def register_document(
        self,
        filename: str,
        *,
        file_size: int = 0,
        language: DocumentLanguage = DocumentLanguage.ENGLISH,
    ) -> Document:
        """Create the ``pending`` record an upload starts from."""
        if not filename:
            raise ValidationError("Missing required fields")
        return self._documents.create_document(filename, file_size=file_size, language=language)

    def ingest_document(self, document_id: str, pages: Sequence[str]) -> IngestionOutcome:
        """Chunk, embed and store every page of a registered document.

        Parameters
        ----------
        document_id:
            Id of a ``pending`` document.
        pages:
            Extracted text per page; page numbers are 1-based in list order.

        Returns
        -------
        IngestionOutcome
            ``Completed``, ``CompletedWithErrors`` or ``Failed``; the same
            status is recorded on the document.
        """
        self._documents.set_status(document_id, DocumentStatus.PROCESSING, page_count=len(pages))

        tasks = self._plan(pages)
        if not tasks:
            reason = "Text extraction yielded no content"
            logger.warning("Document %s failed: %s", document_id, reason)
            self._record_terminal_status(document_id, DocumentStatus.FAILED)
            return Failed(document_id=document_id, reason=reason)

        logger.info("Ingesting document %s: %d chunk(s) from %d page(s)", document_id, len(tasks), len(pages))
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="ingest") as pool:
            results = list(pool.map(lambda task: self._attempt(document_id, task), tasks))

        failed = results.count(False)
        outcome: IngestionOutcome
        if failed:
            outcome = CompletedWithErrors(
                document_id=document_id, chunk_count=len(tasks), failed_chunk_count=failed
            )
            logger.warning("Document %s ingested with %d/%d failed chunk(s)", document_id, failed, len(tasks))
        else:
            outcome = Completed(document_id=document_id, chunk_count=len(tasks))
            logger.info("Document %s ingested (%d chunks)", document_id, len(tasks))

        self._record_terminal_status(document_id, outcome.status)
        return outcome

    # -- internals ------------------------------------------------------------

    def _record_terminal_status(self, document_id: str, status: DocumentStatus) -> None:
        """Write the final status, retrying once; the outcome is returned either way."""
        for attempt in range(1, _TERMINAL_STATUS_ATTEMPTS + 1):
            try:
                self._documents.set_status(document_id, status)
                return
            except PersistenceError as exc:
                logger.warning(
                    "Could not record status %s for document %s (attempt %d/%d): %s",
                    status.value,
                    document_id,
                    attempt,
                    _TERMINAL_STATUS_ATTEMPTS,
                    exc,
                )
        logger.error("Document %s is still marked processing; final status was %s", document_id, status.value)

    def _plan(self, pages: Sequence[str]) -> list[_ChunkTask]:
        if not any(page.strip() for page in pages):
            return []
        tasks: list[_ChunkTask] = []
        for page_number, page_text in enumerate(pages, 1):
            for piece in chunk_text(page_text, self.chunk_size):
                tasks.append(_ChunkTask(chunk_index=len(tasks), page_number=page_number, text=piece))
        return tasks

    def _attempt(self, document_id: str, task: _ChunkTask) -> bool:
        try:
            self.ingest_chunk(
                document_id,
                task.text,
                page_number=task.page_number,
                chunk_index=task.chunk_index,
            )
            return True
        except Exception:
            logger.exception("Chunk %d of document %s failed; continuing", task.chunk_index, document_id)
            return False
