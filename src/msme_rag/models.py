"""Domain models for documents, chunks, conversations and source attribution."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


def _new_id() -> str:
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Language(str, Enum):
    """Languages a chat session can be conducted in."""

    ENGLISH = "english"
    TELUGU = "telugu"


class DocumentLanguage(str, Enum):
    """Declared language of an ingested document."""

    ENGLISH = "english"
    TELUGU = "telugu"
    MIXED = "mixed"


class DocumentStatus(str, Enum):
    """Ingestion lifecycle: ``pending → processing → {completed, completed_with_errors, failed}``."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            DocumentStatus.COMPLETED,
            DocumentStatus.COMPLETED_WITH_ERRORS,
            DocumentStatus.FAILED,
        )


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Document(BaseModel):
    """One ingested source file.

    Attributes
    ----------
    id:
        Document identity.
    filename:
        Display name of the uploaded file.
    file_size:
        Size of the uploaded file in bytes.
    status:
        Ingestion status; only the ingestion pipeline moves it forward.
    language:
        Declared language of the document content.
    page_count:
        Number of extracted pages.
    created_at:
        UTC registration timestamp.
    """

    id: str = Field(default_factory=_new_id)
    filename: str
    file_size: int = 0
    status: DocumentStatus = DocumentStatus.PENDING
    language: DocumentLanguage = DocumentLanguage.ENGLISH
    page_count: int = 0
    created_at: datetime = Field(default_factory=utc_now)


class Chunk(BaseModel):
    """One retrievable unit of a :class:`Document`. Immutable once stored."""

    id: str = Field(default_factory=_new_id)
    document_id: str
    text: str
    chunk_index: int
    page_number: int = 1
    embedding: list[float] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}


class Source(BaseModel):
    """Attribution linking an assistant answer to one retrieved chunk."""

    document_id: str
    chunk_id: str
    page_number: int
    similarity: float


class ScoredChunk(BaseModel):
    """A search hit: the stored chunk and its similarity to the query (higher = closer)."""

    chunk: Chunk
    similarity: float

    def to_source(self) -> Source:
        return Source(
            document_id=self.chunk.document_id,
            chunk_id=self.chunk.id,
            page_number=self.chunk.page_number,
            similarity=self.similarity,
        )


class ChatSession(BaseModel):
    """One conversation."""

    id: str = Field(default_factory=_new_id)
    user_id: str | None = None
    language: Language = Language.ENGLISH
    started_at: datetime = Field(default_factory=utc_now)
    last_activity: datetime = Field(default_factory=utc_now)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ChatMessage(BaseModel):
    """One turn in a session.

    ``sequence`` is the per-session ordering key assigned by the store;
    ``created_at`` is kept as metadata only.
    """

    id: str = Field(default_factory=_new_id)
    session_id: str
    sequence: int
    role: Role
    content: str
    language: Language = Language.ENGLISH
    is_voice: bool = False
    sources: list[Source] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
