"""FastAPI application exposing ingestion and grounded chat over HTTP."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from msme_rag.config import settings
from msme_rag.errors import (
    GenerationError,
    NotFoundError,
    RAGError,
    ValidationError,
)
from msme_rag.models import DocumentLanguage, Language
from msme_rag.serving.dependencies import ServiceContainer, get_services
from msme_rag.serving.schemas import (
    ChatQueryRequest,
    ChatQueryResponse,
    ChunkOut,
    CreateDocumentRequest,
    CreateSessionRequest,
    DocumentOut,
    DocumentResponse,
    ErrorResponse,
    IngestDocumentRequest,
    IngestDocumentResponse,
    MessageOut,
    MessagesResponse,
    ProcessChunkRequest,
    ProcessChunkResponse,
    SessionOut,
    SessionResponse,
    SourceOut,
)

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Client-Info, Apikey",
}

_STATUS_BY_ERROR: list[tuple[type[RAGError], int]] = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (GenerationError, 502),
]


def configure_logging(level: str = settings.log_level) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _status_for(exc: RAGError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


def _error_response(status: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=message).model_dump(by_alias=True),
        headers=CORS_HEADERS,
    )


def _describe_validation_errors(errors: Sequence[Any]) -> str:
    """Flatten FastAPI validation errors into one message, e.g. ``pageNumber: Input should be ...``."""
    parts = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "Invalid request: " + "; ".join(parts)


def _parse_language(value: str, enum: type[Language] | type[DocumentLanguage]):  # noqa: ANN202
    try:
        return enum(value)
    except ValueError as exc:
        raise ValidationError(f"Unsupported language: {value!r}", cause=exc) from exc


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    """Build the application.

    Parameters
    ----------
    services:
        Pre-built collaborators. When *None*, the production container is
        built on the first request that needs it.
    """
    configure_logging()

    app = FastAPI(
        title="MSME RAG API",
        version="0.1.0",
        description="Document ingestion and grounded, bilingual question answering.",
    )
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Client-Info", "Apikey"],
    )

    @app.exception_handler(RAGError)
    async def handle_rag_error(request: Request, exc: RAGError) -> JSONResponse:
        status = _status_for(exc)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(status, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(400, _describe_validation_errors(exc.errors()))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.error("%s %s raised unexpectedly", request.method, request.url.path, exc_info=exc)
        return _error_response(500, "Internal server error")

    # ── Health ────────────────────────────────────────────────────────
    @app.get("/health")
    def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    # ── Chunk ingestion ───────────────────────────────────────────────
    @app.options("/process-pdf")
    @app.options("/chatbot-query")
    def preflight() -> Response:
        return Response(status_code=200, headers=CORS_HEADERS)

    @app.post("/process-pdf", response_model=ProcessChunkResponse)
    def process_chunk(
        body: ProcessChunkRequest,
        services: ServiceContainer = Depends(get_services),
    ) -> ProcessChunkResponse:
        """Embed and store one chunk of an uploaded document."""
        chunk = services.pipeline.ingest_chunk(
            body.document_id or "",
            body.text or "",
            page_number=body.page_number,
            chunk_index=body.chunk_index,
        )
        return ProcessChunkResponse(
            chunk=ChunkOut(
                id=chunk.id,
                document_id=chunk.document_id,
                chunk_text=chunk.text,
                chunk_index=chunk.chunk_index,
                page_number=chunk.page_number,
                metadata=chunk.metadata,
                created_at=chunk.created_at,
            )
        )

    # ── Chat ──────────────────────────────────────────────────────────
    @app.post("/chatbot-query", response_model=ChatQueryResponse)
    def chatbot_query(
        body: ChatQueryRequest,
        services: ServiceContainer = Depends(get_services),
    ) -> ChatQueryResponse:
        """Answer one question from the knowledge base and record the turn."""
        result = services.orchestrator.answer(
            body.session_id or "",
            body.query or "",
            body.language,
            is_voice=body.is_voice,
        )
        return ChatQueryResponse(
            response=result.answer,
            sources=[SourceOut.model_validate(s.model_dump()) for s in result.sources],
        )

    @app.post("/sessions", response_model=SessionResponse)
    def create_session(
        body: CreateSessionRequest,
        services: ServiceContainer = Depends(get_services),
    ) -> SessionResponse:
        session_id = services.conversations.create_session(
            _parse_language(body.language, Language),
            user_id=body.user_id,
            metadata=body.metadata,
        )
        session = services.conversations.get_session(session_id)
        return SessionResponse(session=SessionOut.model_validate(session.model_dump(mode="json")))

    @app.get("/sessions/{session_id}/messages", response_model=MessagesResponse)
    def list_messages(
        session_id: str,
        services: ServiceContainer = Depends(get_services),
    ) -> MessagesResponse:
        messages = services.conversations.list_messages(session_id)
        return MessagesResponse(
            messages=[MessageOut.model_validate(m.model_dump(mode="json")) for m in messages]
        )

    # ── Documents ─────────────────────────────────────────────────────
    @app.post("/documents", response_model=DocumentResponse)
    def register_document(
        body: CreateDocumentRequest,
        services: ServiceContainer = Depends(get_services),
    ) -> DocumentResponse:
        document = services.pipeline.register_document(
            body.filename or "",
            file_size=body.file_size,
            language=_parse_language(body.language, DocumentLanguage),
        )
        return DocumentResponse(document=DocumentOut.model_validate(document.model_dump(mode="json")))

    @app.get("/documents/{document_id}", response_model=DocumentResponse)
    def get_document(
        document_id: str,
        services: ServiceContainer = Depends(get_services),
    ) -> DocumentResponse:
        document = services.documents.get_document(document_id)
        return DocumentResponse(document=DocumentOut.model_validate(document.model_dump(mode="json")))

    @app.post("/documents/{document_id}/ingest", response_model=IngestDocumentResponse)
    def ingest_document(
        document_id: str,
        body: IngestDocumentRequest,
        services: ServiceContainer = Depends(get_services),
    ) -> IngestDocumentResponse:
        """Run the full pipeline over a registered document's extracted text."""
        if body.pages is not None:
            pages = body.pages
        elif body.text is not None:
            pages = [body.text]
        else:
            raise ValidationError("Missing required fields")

        try:
            outcome = services.pipeline.ingest_document(document_id, pages)
        except ValueError as exc:
            raise ValidationError(str(exc), cause=exc) from exc

        document = services.documents.get_document(document_id)
        return IngestDocumentResponse(
            status=outcome.status.value,
            chunk_count=getattr(outcome, "chunk_count", 0),
            failed_chunk_count=getattr(outcome, "failed_chunk_count", 0),
            reason=getattr(outcome, "reason", None),
            document=DocumentOut.model_validate(document.model_dump(mode="json")),
        )

    return app


app = create_app()
