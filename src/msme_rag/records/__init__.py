"""
Records — documents, chat sessions and chat messages.

Public surface
--------------
- :class:`DocumentRegistry` / :class:`ConversationStore` — store contracts.
- :class:`InMemoryDocumentRegistry` / :class:`InMemoryConversationStore` — process-local stores.
- :class:`SqlRecordStore` — SQLAlchemy store implementing both contracts.
"""

from msme_rag.records.base import ConversationStore, DocumentRegistry, check_transition
from msme_rag.records.memory import InMemoryConversationStore, InMemoryDocumentRegistry

__all__ = [
    "ConversationStore",
    "DocumentRegistry",
    "InMemoryConversationStore",
    "InMemoryDocumentRegistry",
    "SqlRecordStore",
    "check_transition",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import SqlRecordStore to avoid pulling in SQLAlchemy at import time."""
    if name == "SqlRecordStore":
        from msme_rag.records.sql_store import SqlRecordStore

        return SqlRecordStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
