"""SQLAlchemy record store for documents, chat sessions and chat messages.

Works against PostgreSQL in production and SQLite for local runs and
tests. Each public method runs in its own transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Engine,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from msme_rag.errors import NotFoundError, PersistenceError
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

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid4())


def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back out.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class DocumentRow(Base):
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    filename: Mapped[str] = mapped_column(Text, nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=DocumentStatus.PENDING.value)
    language: Mapped[str] = mapped_column(String(16), nullable=False, default=DocumentLanguage.ENGLISH.value)
    page_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    def to_model(self) -> Document:
        return Document(
            id=self.id,
            filename=self.filename,
            file_size=self.file_size,
            status=DocumentStatus(self.status),
            language=DocumentLanguage(self.language),
            page_count=self.page_count,
            created_at=_aware(self.created_at),
        )


class ChatSessionRow(Base):
    __tablename__ = "chat_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    language: Mapped[str] = mapped_column(String(16), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    last_activity: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    meta: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    # Last sequence number handed out to a message of this session.
    next_sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def to_model(self) -> ChatSession:
        return ChatSession(
            id=self.id,
            user_id=self.user_id,
            language=Language(self.language),
            started_at=_aware(self.started_at),
            last_activity=_aware(self.last_activity),
            metadata=self.meta or {},
        )


class ChatMessageRow(Base):
    __tablename__ = "chat_messages"
    __table_args__ = (UniqueConstraint("session_id", "sequence", name="uq_chat_messages_session_sequence"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    language: Mapped[str] = mapped_column(String(16), nullable=False)
    is_voice: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sources: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    def to_model(self) -> ChatMessage:
        return ChatMessage(
            id=self.id,
            session_id=self.session_id,
            sequence=self.sequence,
            role=Role(self.role),
            content=self.content,
            language=Language(self.language),
            is_voice=self.is_voice,
            sources=[Source(**s) for s in self.sources or []],
            created_at=_aware(self.created_at),
        )


def create_engine_from_url(database_url: str) -> Engine:
    """Create an engine; in-memory SQLite gets one shared connection across threads."""
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if database_url.startswith("sqlite"):
        # Writers to a SQLite file wait for the database lock instead of failing fast.
        return create_engine(database_url, connect_args={"timeout": 30}, echo=False)
    return create_engine(database_url, pool_pre_ping=True, echo=False)


class SqlRecordStore(DocumentRegistry, ConversationStore):
    """Relational record store implementing both record interfaces.

    Parameters
    ----------
    engine:
        SQLAlchemy engine bound to the target database.
    create_schema:
        Create missing tables on construction.
    """

    def __init__(self, engine: Engine, *, create_schema: bool = True) -> None:
        self._engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)
        if create_schema:
            Base.metadata.create_all(engine)

    @classmethod
    def from_url(cls, database_url: str, *, create_schema: bool = True) -> SqlRecordStore:
        return cls(create_engine_from_url(database_url), create_schema=create_schema)

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Session]:
        try:
            with self._sessions.begin() as db:
                yield db
        except (NotFoundError, ValueError):
            raise
        except SQLAlchemyError as exc:
            logger.error("Record store failed to %s: %s", action, exc)
            raise PersistenceError(f"Could not {action}: {exc}", cause=exc) from exc

    # -- DocumentRegistry -----------------------------------------------------

    def create_document(
        self,
        filename: str,
        *,
        file_size: int = 0,
        language: DocumentLanguage = DocumentLanguage.ENGLISH,
        page_count: int = 0,
    ) -> Document:
        row = DocumentRow(
            id=_new_id(),
            filename=filename,
            file_size=file_size,
            status=DocumentStatus.PENDING.value,
            language=DocumentLanguage(language).value,
            page_count=page_count,
            created_at=utc_now(),
        )
        with self._transaction("create document") as db:
            db.add(row)
        return row.to_model()

    def get_document(self, document_id: str) -> Document:
        with self._transaction("load document") as db:
            row = db.get(DocumentRow, document_id)
            if row is None:
                raise NotFoundError(f"Document {document_id} not found")
            return row.to_model()

    def set_status(
        self,
        document_id: str,
        status: DocumentStatus,
        *,
        page_count: int | None = None,
    ) -> Document:
        with self._transaction("update document status") as db:
            row = db.get(DocumentRow, document_id, with_for_update=True)
            if row is None:
                raise NotFoundError(f"Document {document_id} not found")
            check_transition(DocumentStatus(row.status), status)
            row.status = status.value
            if page_count is not None:
                row.page_count = page_count
            return row.to_model()

    # -- ConversationStore ----------------------------------------------------

    def create_session(
        self,
        language: Language,
        *,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        now = utc_now()
        row = ChatSessionRow(
            id=_new_id(),
            user_id=user_id,
            language=Language(language).value,
            started_at=now,
            last_activity=now,
            meta=metadata or {},
            next_sequence=0,
        )
        with self._transaction("create chat session") as db:
            db.add(row)
        return row.id

    def get_session(self, session_id: str) -> ChatSession:
        with self._transaction("load chat session") as db:
            row = db.get(ChatSessionRow, session_id)
            if row is None:
                raise NotFoundError(f"Chat session {session_id} not found")
            return row.to_model()

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
        payload = [s.model_dump() for s in sources or []]
        with self._transaction("append chat message") as db:
            # Bumping the counter holds the session row lock until commit.
            allocated = db.execute(
                update(ChatSessionRow)
                .where(ChatSessionRow.id == session_id)
                .values(next_sequence=ChatSessionRow.next_sequence + 1)
                .execution_options(synchronize_session=False)
            )
            if allocated.rowcount == 0:
                raise NotFoundError(f"Chat session {session_id} not found")
            sequence = db.scalar(
                select(ChatSessionRow.next_sequence).where(ChatSessionRow.id == session_id)
            )
            row = ChatMessageRow(
                id=_new_id(),
                session_id=session_id,
                sequence=sequence,
                role=Role(role).value,
                content=content,
                language=Language(language).value,
                is_voice=is_voice,
                sources=payload,
                created_at=utc_now(),
            )
            db.add(row)
        logger.debug("Appended %s message #%d to session %s", row.role, sequence, session_id)
        return row.id

    def touch_session(self, session_id: str) -> None:
        with self._transaction("touch chat session") as db:
            result = db.execute(
                update(ChatSessionRow).where(ChatSessionRow.id == session_id).values(last_activity=utc_now())
            )
            if result.rowcount == 0:
                raise NotFoundError(f"Chat session {session_id} not found")

    def list_messages(self, session_id: str) -> list[ChatMessage]:
        with self._transaction("list chat messages") as db:
            if db.get(ChatSessionRow, session_id) is None:
                raise NotFoundError(f"Chat session {session_id} not found")
            rows = db.scalars(
                select(ChatMessageRow)
                .where(ChatMessageRow.session_id == session_id)
                .order_by(ChatMessageRow.sequence)
            )
            return [row.to_model() for row in rows]
