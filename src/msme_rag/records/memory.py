"""In-memory implementations of the record-store interfaces."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Any

from msme_rag.errors import NotFoundError
from msme_rag.models import (
    ChatMessage,
    ChatSession,
    Document,
    DocumentLanguage,
    DocumentStatus,
    Language,
    Role,
    Source,
    utc_now,
)
from msme_rag.records.base import ConversationStore, DocumentRegistry, check_transition


class InMemoryDocumentRegistry(DocumentRegistry):
    """In-memory implementation of DocumentRegistry."""

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}
        self._lock = threading.Lock()

    def create_document(
        self,
        filename: str,
        *,
        file_size: int = 0,
        language: DocumentLanguage = DocumentLanguage.ENGLISH,
        page_count: int = 0,
    ) -> Document:
        document = Document(filename=filename, file_size=file_size, language=language, page_count=page_count)
        with self._lock:
            self._documents[document.id] = document
        return document

    def get_document(self, document_id: str) -> Document:
        with self._lock:
            document = self._documents.get(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    def set_status(
        self,
        document_id: str,
        status: DocumentStatus,
        *,
        page_count: int | None = None,
    ) -> Document:
        with self._lock:
            document = self._documents.get(document_id)
            if document is None:
                raise NotFoundError(f"Document {document_id} not found")
            check_transition(document.status, status)
            update: dict[str, Any] = {"status": status}
            if page_count is not None:
                update["page_count"] = page_count
            document = document.model_copy(update=update)
            self._documents[document_id] = document
        return document


class InMemoryConversationStore(ConversationStore):
    """In-memory implementation of ConversationStore.

    A single lock guards both the message lists and the per-session
    sequence counters, so every append is atomic.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, ChatSession] = {}
        self._messages: dict[str, list[ChatMessage]] = defaultdict(list)
        self._lock = threading.Lock()

    def create_session(
        self,
        language: Language,
        *,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        session = ChatSession(language=language, user_id=user_id, metadata=metadata or {})
        with self._lock:
            self._sessions[session.id] = session
        return session.id

    def get_session(self, session_id: str) -> ChatSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Chat session {session_id} not found")
        return session

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
        with self._lock:
            if session_id not in self._sessions:
                raise NotFoundError(f"Chat session {session_id} not found")
            history = self._messages[session_id]
            message = ChatMessage(
                session_id=session_id,
                sequence=len(history) + 1,
                role=role,
                content=content,
                language=language,
                is_voice=is_voice,
                sources=list(sources or []),
            )
            history.append(message)
        return message.id

    def touch_session(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise NotFoundError(f"Chat session {session_id} not found")
            self._sessions[session_id] = session.model_copy(update={"last_activity": utc_now()})

    def list_messages(self, session_id: str) -> list[ChatMessage]:
        with self._lock:
            if session_id not in self._sessions:
                raise NotFoundError(f"Chat session {session_id} not found")
            return list(self._messages[session_id])
