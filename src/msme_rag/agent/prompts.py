"""Prompt templates for grounded answering, one profile per chat language.

Every language is a row in :data:`LANGUAGE_PROFILES`; supporting another
language means adding a row, not a branch.
"""

from __future__ import annotations

from dataclasses import dataclass

from msme_rag.models import Language

# ── Shared rules ──────────────────────────────────────────────────────

_GROUNDING_RULES = """\
Rules:
1. Answer only from the knowledge-base context supplied with the question.
2. If no context is supplied, or it does not contain the answer, say so
   politely and do not invent facts, figures, fees, or document references.
3. Be concise and practical.
"""

# ── Per-language templates ────────────────────────────────────────────

ENGLISH_SYSTEM = (
    "You are a helpful chatbot for an MSME (Micro, Small, and Medium Enterprises) "
    "website. Provide clear and helpful answers in English.\n\n" + _GROUNDING_RULES
)

TELUGU_SYSTEM = (
    "మీరు MSME (సూక్ష్మ, చిన్న మరియు మధ్యతరహా సంస్థలు) వెబ్‌సైట్ కొరకు సహాయక చాట్‌బాట్. "
    "దయచేసి తెలుగులో స్పష్టమైన మరియు సహాయకరమైన సమాధానాలు అందించండి.\n\n"
    + _GROUNDING_RULES
    + "4. Always reply in Telugu.\n"
)

CONTEXT_TEMPLATE = """\
Context from knowledge base:
{context}

User question: {query}

Please answer based on the context provided. If the answer is not in the \
context, politely say you don't have that information."""

NO_CONTEXT_TEMPLATE = """\
User question: {query}

I don't have specific information about this in my knowledge base. Please \
provide a helpful general response or ask for clarification, and do not \
present anything as coming from the knowledge base."""


@dataclass(frozen=True)
class LanguageProfile:
    """Prompt material for one chat language."""

    system_prompt: str
    context_template: str
    no_context_template: str
    fallback_answer: str


LANGUAGE_PROFILES: dict[Language, LanguageProfile] = {
    Language.ENGLISH: LanguageProfile(
        system_prompt=ENGLISH_SYSTEM,
        context_template=CONTEXT_TEMPLATE,
        no_context_template=NO_CONTEXT_TEMPLATE,
        fallback_answer="I apologize, but I could not generate a response.",
    ),
    Language.TELUGU: LanguageProfile(
        system_prompt=TELUGU_SYSTEM,
        context_template=CONTEXT_TEMPLATE,
        no_context_template=NO_CONTEXT_TEMPLATE,
        fallback_answer="క్షమించండి, నేను సమాధానం ఇవ్వలేకపోయాను.",
    ),
}


def get_profile(language: Language) -> LanguageProfile:
    return LANGUAGE_PROFILES[Language(language)]


@dataclass(frozen=True)
class AnswerPrompt:
    """System instruction and user prompt for one generation call."""

    system: str
    user: str
    grounded: bool


def build_answer_prompt(query: str, context: str, language: Language) -> AnswerPrompt:
    """Assemble the prompt for a retrieval-augmented answer.

    Parameters
    ----------
    query:
        The user question, embedded verbatim.
    context:
        Retrieved chunk texts joined by blank lines; empty selects the
        no-context template.
    language:
        Chat language selecting the system instruction.
    """
    profile = get_profile(language)
    if context:
        user = profile.context_template.format(context=context, query=query)
    else:
        user = profile.no_context_template.format(query=query)
    return AnswerPrompt(system=profile.system_prompt, user=user, grounded=bool(context))
