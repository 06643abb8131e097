"""Embedding adapter shared by ingestion and query paths."""

from __future__ import annotations

import logging
import math
import threading
from typing import TYPE_CHECKING

from msme_rag.config import settings
from msme_rag.errors import EmbeddingUnavailable

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


def get_embedding_function(
    model_name: str = settings.embedding_model,
    *,
    normalize: bool = settings.normalize_embeddings,
) -> Embeddings:
    """Return the configured sentence-transformer embedding function."""
    from langchain_huggingface import HuggingFaceEmbeddings

    return HuggingFaceEmbeddings(
        model_name=model_name,
        encode_kwargs={"normalize_embeddings": normalize},
    )


class Embedder:
    """Turn chunk text and query text into vectors of one fixed dimension.

    Documents and queries go through the exact same encode call so that
    their vectors share one space; a different query-side normalization
    would make similarity scores meaningless.

    Parameters
    ----------
    embeddings:
        A LangChain ``Embeddings`` implementation. When *None*, the
        HuggingFace model named by *model_name* is loaded on first use.
    model_name:
        Model identifier, also recorded in chunk metadata.
    dimension:
        Expected vector dimension. When *None*, the dimension of the first
        successful embedding is adopted and enforced afterwards.
    """

    def __init__(
        self,
        embeddings: Embeddings | None = None,
        *,
        model_name: str = settings.embedding_model,
        dimension: int | None = None,
    ) -> None:
        self._embeddings = embeddings
        self.model_name = model_name
        self.dimension = dimension
        self._lock = threading.Lock()

    def embed(self, text: str) -> list[float]:
        """Embed *text*.

        Raises
        ------
        EmbeddingUnavailable
            When the model cannot be loaded or invoked, or returns a vector
            that is empty, non-finite, or of the wrong dimension.
        """
        embeddings = self._get_embeddings()
        try:
            vectors = embeddings.embed_documents([text])
        except Exception as exc:
            raise EmbeddingUnavailable(f"Embedding model {self.model_name!r} failed: {exc}", cause=exc) from exc
        return self._validate(vectors)

    def _get_embeddings(self) -> Embeddings:
        if self._embeddings is None:
            with self._lock:
                if self._embeddings is None:
                    logger.info("Loading embedding model %s", self.model_name)
                    try:
                        self._embeddings = get_embedding_function(self.model_name)
                    except Exception as exc:
                        raise EmbeddingUnavailable(
                            f"Could not load embedding model {self.model_name!r}: {exc}", cause=exc
                        ) from exc
        return self._embeddings

    def _validate(self, vectors: list[list[float]]) -> list[float]:
        if not vectors or not vectors[0]:
            raise EmbeddingUnavailable(f"Embedding model {self.model_name!r} returned no vector")
        try:
            vector = [float(v) for v in vectors[0]]
        except (TypeError, ValueError) as exc:
            raise EmbeddingUnavailable("Embedding contains non-numeric values", cause=exc) from exc
        if not all(math.isfinite(v) for v in vector):
            raise EmbeddingUnavailable("Embedding contains non-finite values")

        with self._lock:
            if self.dimension is None:
                self.dimension = len(vector)
        if len(vector) != self.dimension:
            raise EmbeddingUnavailable(
                f"Embedding dimension {len(vector)} does not match expected {self.dimension}"
            )
        return vector
