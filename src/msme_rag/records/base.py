"""Record-store contracts for documents and conversations.

The durable store itself is an external collaborator; these interfaces are
the narrow surface the pipeline needs from it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from msme_rag.models import (
    ChatMessage,
    ChatSession,
    Document,
    DocumentLanguage,
    DocumentStatus,
    Language,
    Role,
    Source,
)

_ALLOWED_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.PENDING: frozenset({DocumentStatus.PROCESSING, DocumentStatus.FAILED}),
    DocumentStatus.PROCESSING: frozenset(
        {DocumentStatus.COMPLETED, DocumentStatus.COMPLETED_WITH_ERRORS, DocumentStatus.FAILED}
    ),
}


def check_transition(current: DocumentStatus, new: DocumentStatus) -> None:
    """Raise ``ValueError`` unless *current* → *new* is a legal ingestion transition."""
    if new not in _ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise ValueError(f"Illegal document status transition {current.value} -> {new.value}")


class DocumentRegistry(ABC):
    """Document records and their ingestion status."""

    @abstractmethod
    def create_document(
        self,
        filename: str,
        *,
        file_size: int = 0,
        language: DocumentLanguage = DocumentLanguage.ENGLISH,
        page_count: int = 0,
    ) -> Document:
        """Register an uploaded file as a ``pending`` document."""
        ...

    @abstractmethod
    def get_document(self, document_id: str) -> Document:
        """Return the document or raise :class:`~msme_rag.errors.NotFoundError`."""
        ...

    @abstractmethod
    def set_status(
        self,
        document_id: str,
        status: DocumentStatus,
        *,
        page_count: int | None = None,
    ) -> Document:
        """Move the document to *status*, optionally recording its page count."""
        ...


class ConversationStore(ABC):
    """Append-only conversation history.

    Messages are ordered by a per-session ``sequence`` number that the
    store allocates atomically, so concurrent turns in one session never
    lose a message or share a position.
    """

    @abstractmethod
    def create_session(
        self,
        language: Language,
        *,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        ...

    @abstractmethod
    def get_session(self, session_id: str) -> ChatSession:
        ...

    @abstractmethod
    def append_message(
        self,
        session_id: str,
        role: Role,
        content: str,
        language: Language,
        *,
        sources: list[Source] | None = None,
        is_voice: bool = False,
    ) -> str:
        """Append one message and return its id. Repeated content is never collapsed."""
        ...

    @abstractmethod
    def touch_session(self, session_id: str) -> None:
        """Set the session's ``last_activity`` to now."""
        ...

    @abstractmethod
    def list_messages(self, session_id: str) -> list[ChatMessage]:
        """Return the session's messages in turn order."""
        ...
