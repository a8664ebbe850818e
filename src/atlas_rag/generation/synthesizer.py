"""Answer synthesis — one deterministic completion call over the context."""

from __future__ import annotations

import logging

import httpx
import openai
from langchain_core.language_models import BaseLanguageModel

from atlas_rag.errors import CompletionProviderError
from atlas_rag.generation.prompts import build_rag_prompt

logger = logging.getLogger(__name__)


class AnswerSynthesizer:
    """Answer a question strictly from retrieved context.

    Parameters
    ----------
    llm:
        Completion (or chat) model, typically from
        :func:`atlas_rag.generation.llm.get_llm`.
    provider:
        Name reported in :class:`CompletionProviderError`.
    """

    def __init__(self, llm: BaseLanguageModel, *, provider: str = "OpenAI") -> None:
        self._llm = llm
        self._provider = provider

    def synthesize(self, question: str, context: str) -> str:
        """Return the plain-text answer.  Failures are not retried.

        Raises
        ------
        CompletionProviderError
            The completion call failed; no answer is fabricated.
        """
        prompt = build_rag_prompt(question, context)
        try:
            result = self._llm.invoke(prompt)
        except openai.APIStatusError as exc:
            logger.error("Completion failed (%s): %s", exc.status_code, exc.message)
            raise CompletionProviderError(self._provider, exc.message, status_code=exc.status_code) from exc
        except (openai.OpenAIError, httpx.HTTPError) as exc:
            logger.error("Completion failed: %s", exc)
            raise CompletionProviderError(self._provider, str(exc)) from exc

        # Chat models return a message, completion models a string.
        text = getattr(result, "content", result)
        return str(text).strip()
