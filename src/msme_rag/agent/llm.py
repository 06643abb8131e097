"""LLM initialisation and the generation adapter — single place to swap providers.

Supports two modes:

1. **OpenAI cloud** (default) — set ``OPENAI_API_KEY``.
2. **OpenAI-compatible endpoint** — set ``LLM_BASE_URL`` to a self-hosted
   vLLM / TGI server (e.g. serving ``meta-llama/Meta-Llama-3.1-8B-Instruct``).
   Those runtimes expose ``/v1/chat/completions``, so ``ChatOpenAI`` works
   unchanged.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from langchain_core.messages import HumanMessage, SystemMessage

from msme_rag.config import settings
from msme_rag.errors import GenerationError

if TYPE_CHECKING:
    from langchain_core.language_models.chat_models import BaseChatModel

logger = logging.getLogger(__name__)


def get_llm(temperature: float = settings.llm_temperature) -> BaseChatModel:
    """Return the configured chat model.

    When ``settings.llm_base_url`` is set the client is pointed at that
    endpoint instead of the OpenAI cloud API. A dummy API key (``"EMPTY"``)
    is used because vLLM does not require authentication.
    """
    from langchain_openai import ChatOpenAI

    kwargs: dict[str, Any] = {
        "model": settings.llm_model_name,
        "temperature": temperature,
        "timeout": settings.llm_timeout_seconds,
    }

    if settings.llm_base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", settings.llm_base_url)
        kwargs["base_url"] = settings.llm_base_url
        # vLLM doesn't need a real key; LangChain requires a non-empty value.
        kwargs["api_key"] = settings.openai_api_key or "EMPTY"
    else:
        kwargs["api_key"] = settings.openai_api_key

    return ChatOpenAI(**kwargs)


def _message_text(content: Any) -> str:
    """Flatten a chat-model message payload (string or content blocks) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return ""


class Generator:
    """Answer generation through a LangChain chat model.

    Parameters
    ----------
    llm:
        Any LangChain chat model. When *None*, :func:`get_llm` builds one
        on first use.
    """

    def __init__(self, llm: BaseChatModel | None = None) -> None:
        self._llm = llm
        self._lock = threading.Lock()

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        """Return the model's text reply; may be empty.

        Raises
        ------
        GenerationError
            On any client, transport, or model failure.
        """
        llm = self._get_llm()
        try:
            response = llm.invoke([SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)])
        except Exception as exc:
            raise GenerationError(f"Answer generation failed: {exc}", cause=exc) from exc
        return _message_text(getattr(response, "content", ""))

    def _get_llm(self) -> BaseChatModel:
        if self._llm is None:
            with self._lock:
                if self._llm is None:
                    try:
                        self._llm = get_llm()
                    except Exception as exc:
                        raise GenerationError(f"Could not initialise chat model: {exc}", cause=exc) from exc
        return self._llm
