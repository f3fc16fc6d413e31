"""
MiniRAG - Answer Generation
============================
``Generator`` is the narrow contract between retrieval and the language
model: ``generate(question, context) -> answer``.  ``GeminiGenerator``
implements it with ``ChatGoogleGenerativeAI``; ``naive_answer`` is the
model-free fallback used when no generator is configured or the model
call fails.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from minirag.config.prompt_templates import NAIVE_ANSWER_HEADER, RAG_PROMPT_TEMPLATE, SYSTEM_PROMPT
from minirag.config.settings import settings
from minirag.src.core.models import ScoredCandidate
from minirag.src.utils.logger import get_logger

logger = get_logger(__name__)


@runtime_checkable
class Generator(Protocol):
    """Anything that can turn a question plus retrieved context into an answer."""

    async def generate(self, question: str, context: str | None) -> str: ...


class GeminiGenerator:
    """
    Grounded answer generation through LangChain's Gemini chat model.

    Parameters
    ----------
    llm
        Optional pre-built chat model (anything with ``ainvoke``).  Built
        from ``settings`` when omitted.
    """

    __slots__ = ("_llm",)

    def __init__(self, llm: object | None = None) -> None:
        self._llm = llm or self._init_llm()


    @staticmethod
    def _init_llm() -> object:
        """Initialise the Gemini LLM via LangChain."""
        from langchain_google_genai import ChatGoogleGenerativeAI

        if settings.GOOGLE_API_KEY is None:
            raise RuntimeError("GOOGLE_API_KEY is not set — cannot create the chat model.")

        llm = ChatGoogleGenerativeAI(model=settings.LLM_MODEL, temperature=settings.LLM_TEMPERATURE, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
        logger.info("LLM initialised: %s (temperature=%.1f)", settings.LLM_MODEL, settings.LLM_TEMPERATURE)
        return llm


    async def generate(self, question: str, context: str | None) -> str:
        """Ask the model to answer *question* using only *context*."""
        from langchain_core.messages import HumanMessage, SystemMessage

        prompt = RAG_PROMPT_TEMPLATE.format(context=context or "(no context)", question=question)
        messages = [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=prompt)]

        response = await self._llm.ainvoke(messages)  # type: ignore[union-attr]
        content = response.content if hasattr(response, "content") else response
        return content if isinstance(content, str) else str(content)


def naive_answer(candidates: Sequence[ScoredCandidate]) -> str:
    """Summarise the ranked chunks as a bullet list with ``[n]`` markers."""
    lines = [f"• {candidate.text} [{rank}]" for rank, candidate in enumerate(candidates, 1)]
    return "\n".join([NAIVE_ANSWER_HEADER, *lines])
