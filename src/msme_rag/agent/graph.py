"""LangGraph graph definition — the grounded answer workflow.

This module wires the nodes defined in :mod:`msme_rag.agent.nodes` into a
compiled :class:`StateGraph` that answers one chat turn:

1. **Persist** the user's question.
2. **Embed** the question with the ingestion embedder.
3. **Retrieve** matching chunks (skipped when embedding failed).
4. **Build** a grounded or no-context prompt for the session language.
5. **Generate** the answer.
6. **Persist** the answer with its sources and touch the session.

The graph holds no global state; every collaborator is injected, so tests
run it end to end with fakes.
"""

from __future__ import annotations

import logging

from langgraph.graph import END, StateGraph
from pydantic import BaseModel, Field

from msme_rag.agent.llm import Generator
from msme_rag.agent.nodes import AnswerNodes, route_after_embedding
from msme_rag.agent.state import AnswerState
from msme_rag.errors import ValidationError
from msme_rag.ingestion.embedder import Embedder
from msme_rag.models import Language, Source
from msme_rag.records.base import ConversationStore
from msme_rag.retrieval.base import DEFAULT_MATCH_COUNT, DEFAULT_MATCH_THRESHOLD, VectorStoreBase

logger = logging.getLogger(__name__)


def build_graph(nodes: AnswerNodes):  # noqa: ANN201
    """Construct and return the compiled answer graph.

    Graph topology::

        persist_user_message
                 │
                 ▼
            embed_query ──── no vector ────┐
                 │                         │
                 ▼                         │
              retrieve                     │
                 │                         │
                 ▼                         │
            build_prompt ◄─────────────────┘
                 │
                 ▼
              generate
                 │
                 ▼
           persist_answer
                 │
                 ▼
              [ END ]
    """
    workflow = StateGraph(AnswerState)

    # -- Nodes ---------------------------------------------------------------
    workflow.add_node("persist_user_message", nodes.persist_user_message)
    workflow.add_node("embed_query", nodes.embed_query)
    workflow.add_node("retrieve", nodes.retrieve)
    workflow.add_node("build_prompt", nodes.build_prompt)
    workflow.add_node("generate", nodes.generate)
    workflow.add_node("persist_answer", nodes.persist_answer)

    # -- Edges ---------------------------------------------------------------
    workflow.set_entry_point("persist_user_message")
    workflow.add_edge("persist_user_message", "embed_query")
    workflow.add_conditional_edges(
        "embed_query",
        route_after_embedding,
        {
            "retrieve": "retrieve",
            "build_prompt": "build_prompt",
        },
    )
    workflow.add_edge("retrieve", "build_prompt")
    workflow.add_edge("build_prompt", "generate")
    workflow.add_edge("generate", "persist_answer")
    workflow.add_edge("persist_answer", END)

    return workflow.compile()


class Answer(BaseModel):
    """Result of one chat turn."""

    answer: str
    sources: list[Source] = Field(default_factory=list)
    grounded: bool = False


class RAGOrchestrator:
    """Answer questions from ingested documents, one independent turn per call.

    Parameters
    ----------
    embedder, store, conversations, generator:
        Collaborators; see :class:`~msme_rag.agent.nodes.AnswerNodes`.
    threshold:
        Minimum similarity for a chunk to be used as context.
    limit:
        Maximum number of chunks used as context.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStoreBase,
        conversations: ConversationStore,
        generator: Generator,
        *,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        limit: int = DEFAULT_MATCH_COUNT,
    ) -> None:
        self.nodes = AnswerNodes(
            embedder, store, conversations, generator, threshold=threshold, limit=limit
        )
        self.graph = build_graph(self.nodes)

    def answer(
        self,
        session_id: str,
        query: str,
        language: Language | str = Language.ENGLISH,
        *,
        is_voice: bool = False,
    ) -> Answer:
        """Run one turn and return the answer with its source attributions.

        Raises
        ------
        ValidationError
            Missing session id or query, or an unsupported language.
        NotFoundError
            Unknown session; nothing is persisted.
        PersistenceError
            The question or the answer could not be stored.
        GenerationError
            The model failed; the question stays persisted, no answer is.
        """
        if not session_id or not query:
            raise ValidationError("Missing required fields")
        try:
            language = Language(language)
        except ValueError as exc:
            raise ValidationError(f"Unsupported language: {language!r}", cause=exc) from exc

        result = self.graph.invoke(
            {
                "session_id": session_id,
                "query": query,
                "language": language,
                "is_voice": is_voice,
            }
        )
        return Answer(
            answer=result["answer"],
            sources=result.get("sources", []),
            grounded=result["prompt"].grounded,
        )
