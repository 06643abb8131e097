"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    openai_api_key: str = Field(default="", description="OpenAI API key (or dummy value for local vLLM)")
    llm_model_name: str = Field(default="gpt-4o-mini", description="Generative model identifier")
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL of an OpenAI-compatible chat endpoint. Leave empty to use "
            "OpenAI cloud, e.g. 'http://vllm.local:8000/v1' for a self-hosted "
            "Llama 3.1 Instruct."
        ),
    )
    llm_temperature: float = 0.2
    llm_timeout_seconds: float = 60.0

    # Embedding
    embedding_model: str = "thenlper/gte-small"
    normalize_embeddings: bool = True

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "document_chunks"

    # Record store (documents, sessions, messages)
    database_url: str = "sqlite:///./msme_rag.db"

    # Retrieval / ingestion
    chunk_size: int = 500
    match_threshold: float = 0.5
    match_count: int = 5
    ingest_max_workers: int = 4

    # Serving
    log_level: str = "INFO"
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


# Singleton — import `settings` wherever needed.
settings = Settings()
