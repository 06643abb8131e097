"""Request / response schemas for the HTTP entry points.

Field names travel in camelCase on the wire (``documentId``,
``pageNumber``, …) and are snake_case in Python.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ── Embedded objects ──────────────────────────────────────────────────


class SourceOut(WireModel):
    document_id: str
    chunk_id: str
    page_number: int
    similarity: float


class ChunkOut(WireModel):
    id: str
    document_id: str
    chunk_text: str
    chunk_index: int
    page_number: int
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class DocumentOut(WireModel):
    id: str
    filename: str
    file_size: int
    status: str
    language: str
    page_count: int
    created_at: datetime


class SessionOut(WireModel):
    id: str
    user_id: str | None = None
    language: str
    started_at: datetime
    last_activity: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class MessageOut(WireModel):
    id: str
    session_id: str
    sequence: int
    role: str
    content: str
    language: str
    is_voice: bool
    sources: list[SourceOut] = Field(default_factory=list)
    created_at: datetime


# ── Requests ──────────────────────────────────────────────────────────
# Required fields default to None so that a missing field is reported as
# a 400 "Missing required fields" rather than a framework 422.


class ProcessChunkRequest(WireModel):
    """One pre-cut chunk posted by the upload client."""

    document_id: str | None = None
    text: str | None = None
    page_number: int = 1
    chunk_index: int = 0


class ChatQueryRequest(WireModel):
    """Incoming question from the chat client."""

    session_id: str | None = None
    query: str | None = None
    language: str = "english"
    is_voice: bool = False


class CreateSessionRequest(WireModel):
    language: str = "english"
    user_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class CreateDocumentRequest(WireModel):
    filename: str | None = None
    file_size: int = 0
    language: str = "english"


class IngestDocumentRequest(WireModel):
    """Extracted text of a registered document, per page or as one block."""

    pages: list[str] | None = None
    text: str | None = None


# ── Responses ─────────────────────────────────────────────────────────


class ErrorResponse(WireModel):
    success: bool = False
    error: str


class ProcessChunkResponse(WireModel):
    success: bool = True
    chunk: ChunkOut | None = None


class ChatQueryResponse(WireModel):
    success: bool = True
    response: str | None = None
    sources: list[SourceOut] = Field(default_factory=list)


class SessionResponse(WireModel):
    success: bool = True
    session: SessionOut


class MessagesResponse(WireModel):
    success: bool = True
    messages: list[MessageOut] = Field(default_factory=list)


class DocumentResponse(WireModel):
    success: bool = True
    document: DocumentOut


class IngestDocumentResponse(WireModel):
    success: bool = True
    status: str
    chunk_count: int = 0
    failed_chunk_count: int = 0
    reason: str | None = None
    document: DocumentOut
