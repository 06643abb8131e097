"""Answer state definition — shared across all graph nodes.

The state is the single source of truth that flows through the answer
graph for one chat turn. Each node returns only the keys it changed.
"""

from __future__ import annotations

from typing import TypedDict

from msme_rag.agent.prompts import AnswerPrompt
from msme_rag.models import Language, Source


class AnswerState(TypedDict, total=False):
    """Typed state for one turn.

    Attributes
    ----------
    session_id:
        Conversation the turn belongs to.
    query:
        The user's question, verbatim.
    language:
        Chat language selecting the prompt profile.
    is_voice:
        Whether the question arrived through speech input.
    user_message_id:
        Id of the persisted user turn (set first, before any model call).
    query_embedding:
        Query vector, or ``None`` when embedding failed.
    context:
        Hit texts joined by blank lines; empty when nothing was retrieved.
    sources:
        One :class:`Source` per hit.
    prompt:
        System and user prompt sent to the model.
    answer:
        Final answer text.
    assistant_message_id:
        Id of the persisted assistant turn.
    """

    session_id: str
    query: str
    language: Language
    is_voice: bool
    user_message_id: str
    query_embedding: list[float] | None
    context: str
    sources: list[Source]
    prompt: AnswerPrompt
    answer: str
    assistant_message_id: str
