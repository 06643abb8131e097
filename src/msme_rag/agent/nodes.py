"""Graph nodes — each method is one step of a grounded chat turn.

Node contract
-------------
* Accepts the full :class:`AnswerState` dict.
* Returns a *partial* dict with **only the keys that changed**.
* Collaborators are injected through :class:`AnswerNodes`; there is no
  module-level client, so every node is independently testable.

Failure policy
--------------
* Retrieval (embedding, search) is best-effort: a failure yields an empty
  context and the turn continues.
* Persisting the user turn and generating the answer are fatal: the
  exception propagates out of the graph and no assistant turn is written.
"""

from __future__ import annotations

import logging
from typing import Any

from msme_rag.agent.llm import Generator
from msme_rag.agent.prompts import build_answer_prompt, get_profile
from msme_rag.agent.state import AnswerState
from msme_rag.errors import EmbeddingUnavailable, RetrievalError
from msme_rag.ingestion.embedder import Embedder
from msme_rag.models import Role
from msme_rag.records.base import ConversationStore
from msme_rag.retrieval.base import DEFAULT_MATCH_COUNT, DEFAULT_MATCH_THRESHOLD, VectorStoreBase

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n"


class AnswerNodes:
    """Bind the answer-graph steps to their collaborators.

    Parameters
    ----------
    embedder:
        Must apply the same normalization as ingestion.
    store:
        Vector store searched for context.
    conversations:
        Conversation history store.
    generator:
        Generative-model adapter.
    threshold / limit:
        Similarity floor and result cap for the search.
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
        self.embedder = embedder
        self.store = store
        self.conversations = conversations
        self.generator = generator
        self.threshold = threshold
        self.limit = limit

    # ── 1. PERSIST USER TURN ──────────────────────────────────────────

    def persist_user_message(self, state: AnswerState) -> dict[str, Any]:
        """Record the question before anything else can fail."""
        message_id = self.conversations.append_message(
            state["session_id"],
            Role.USER,
            state["query"],
            state["language"],
            is_voice=state.get("is_voice", False),
        )
        return {"user_message_id": message_id}

    # ── 2. EMBED QUERY ────────────────────────────────────────────────

    def embed_query(self, state: AnswerState) -> dict[str, Any]:
        try:
            return {"query_embedding": self.embedder.embed(state["query"])}
        except EmbeddingUnavailable as exc:
            logger.warning("Query embedding unavailable, answering without context: %s", exc)
            return {"query_embedding": None}

    # ── 3. RETRIEVE ───────────────────────────────────────────────────

    def retrieve(self, state: AnswerState) -> dict[str, Any]:
        """Search the store and turn hits into context plus source attributions."""
        try:
            hits = self.store.search(state["query_embedding"], threshold=self.threshold, limit=self.limit)
        except RetrievalError as exc:
            logger.warning("Vector search failed, answering without context: %s", exc)
            hits = []
        except Exception:
            logger.exception("Vector store raised unexpectedly, answering without context")
            hits = []

        logger.info("Retrieved %d chunk(s) for session %s", len(hits), state["session_id"])
        return {
            "context": CONTEXT_SEPARATOR.join(hit.chunk.text for hit in hits),
            "sources": [hit.to_source() for hit in hits],
        }

    # ── 4. BUILD PROMPT ───────────────────────────────────────────────

    def build_prompt(self, state: AnswerState) -> dict[str, Any]:
        return {
            "prompt": build_answer_prompt(state["query"], state.get("context", ""), state["language"])
        }

    # ── 5. GENERATE ───────────────────────────────────────────────────

    def generate(self, state: AnswerState) -> dict[str, Any]:
        prompt = state["prompt"]
        try:
            answer = self.generator.generate(prompt.system, prompt.user)
        except Exception:
            logger.error("Generation failed for session %s", state["session_id"])
            raise
        if not answer.strip():
            logger.warning("Model returned an empty answer; using fallback")
            answer = get_profile(state["language"]).fallback_answer
        return {"answer": answer}

    # ── 6. PERSIST ASSISTANT TURN ─────────────────────────────────────

    def persist_answer(self, state: AnswerState) -> dict[str, Any]:
        message_id = self.conversations.append_message(
            state["session_id"],
            Role.ASSISTANT,
            state["answer"],
            state["language"],
            sources=state.get("sources", []),
        )
        self.conversations.touch_session(state["session_id"])
        return {"assistant_message_id": message_id}


# ── Routing (conditional edge) ────────────────────────────────────────


def route_after_embedding(state: AnswerState) -> str:
    """Skip the search when no query vector could be produced.

    Returns
    -------
    str
        ``"retrieve"`` when an embedding exists, otherwise ``"build_prompt"``.
    """
    if state.get("query_embedding"):
        return "retrieve"
    return "build_prompt"
