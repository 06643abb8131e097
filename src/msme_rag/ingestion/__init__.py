"""
Ingestion — chunking, embedding, and storing document text.

This module converts extracted document text into embedded chunks stored
in the vector store, and tracks each document's ingestion status.
"""

from msme_rag.ingestion.chunker import chunk_text, iter_chunks
from msme_rag.ingestion.embedder import Embedder
from msme_rag.ingestion.pipeline import (
    Completed,
    CompletedWithErrors,
    Failed,
    IngestionOutcome,
    IngestionPipeline,
)

__all__ = [
    "Completed",
    "CompletedWithErrors",
    "Embedder",
    "Failed",
    "IngestionOutcome",
    "IngestionPipeline",
    "chunk_text",
    "iter_chunks",
]
