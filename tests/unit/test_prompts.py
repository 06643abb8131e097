"""Unit tests for prompt construction."""

from msme_rag.agent.prompts import (
    ENGLISH_SYSTEM,
    LANGUAGE_PROFILES,
    TELUGU_SYSTEM,
    build_answer_prompt,
    get_profile,
)
from msme_rag.models import Language


def test_every_language_has_a_profile() -> None:
    assert set(LANGUAGE_PROFILES) == set(Language)


def test_context_prompt_embeds_context_and_query() -> None:
    prompt = build_answer_prompt("What is the fee?", "Registration is free.", Language.ENGLISH)
    assert prompt.grounded is True
    assert prompt.system == ENGLISH_SYSTEM
    assert "Context from knowledge base:\nRegistration is free." in prompt.user
    assert "User question: What is the fee?" in prompt.user


def test_empty_context_uses_no_context_template() -> None:
    prompt = build_answer_prompt("What is the fee?", "", Language.ENGLISH)
    assert prompt.grounded is False
    assert "Context from knowledge base" not in prompt.user
    assert "I don't have specific information" in prompt.user


def test_telugu_selects_telugu_instruction() -> None:
    prompt = build_answer_prompt("రుసుము ఎంత?", "", Language.TELUGU)
    assert prompt.system == TELUGU_SYSTEM
    assert "తెలుగులో" in prompt.system
    assert "రుసుము ఎంత?" in prompt.user


def test_language_given_as_string() -> None:
    assert get_profile("telugu") is LANGUAGE_PROFILES[Language.TELUGU]


def test_fallback_answers() -> None:
    assert get_profile(Language.ENGLISH).fallback_answer == "I apologize, but I could not generate a response."
    assert get_profile(Language.TELUGU).fallback_answer
