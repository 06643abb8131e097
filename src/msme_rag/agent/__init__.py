"""
Agent — the grounded answer workflow built with LangGraph.

Public API
----------
- :class:`RAGOrchestrator` — answer one chat turn.
- :func:`build_graph` — compile the workflow from bound nodes.
- :class:`AnswerState` — the TypedDict flowing through every node.
"""

from msme_rag.agent.graph import Answer, RAGOrchestrator, build_graph
from msme_rag.agent.llm import Generator, get_llm
from msme_rag.agent.nodes import AnswerNodes
from msme_rag.agent.prompts import LANGUAGE_PROFILES, AnswerPrompt, LanguageProfile, build_answer_prompt
from msme_rag.agent.state import AnswerState

__all__ = [
    "Answer",
    "AnswerNodes",
    "AnswerPrompt",
    "AnswerState",
    "Generator",
    "LANGUAGE_PROFILES",
    "LanguageProfile",
    "RAGOrchestrator",
    "build_answer_prompt",
    "build_graph",
    "get_llm",
]
