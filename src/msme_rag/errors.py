"""Error taxonomy shared by every component.

Adapters translate third-party failures (model loading, Chroma, OpenAI,
SQLAlchemy) into one of these at their boundary so that callers only ever
handle :class:`RAGError` subclasses.
"""

from __future__ import annotations


class RAGError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        if cause is not None:
            self.__cause__ = cause


class ValidationError(RAGError):
    """A required request field is missing or malformed. No side effects were performed."""


class NotFoundError(RAGError):
    """A referenced session or document does not exist."""


class EmbeddingUnavailable(RAGError):
    """The embedding model is unreachable or returned malformed output."""


class RetrievalError(RAGError):
    """The vector search failed."""


class GenerationError(RAGError):
    """The generative model failed to produce an answer."""


class PersistenceError(RAGError):
    """A write to the record store or vector store failed."""
