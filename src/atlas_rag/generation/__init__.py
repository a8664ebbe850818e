"""
Generation — grounded answer synthesis over retrieved context.

Public API
----------
- :class:`AnswerSynthesizer` — render the prompt and call the completion model.
- :func:`get_llm` — build the configured completion model.
- :func:`build_rag_prompt` — the grounded prompt template.
"""

from atlas_rag.generation.prompts import build_rag_prompt
from atlas_rag.generation.synthesizer import AnswerSynthesizer

__all__ = [
    "AnswerSynthesizer",
    "build_rag_prompt",
    "get_llm",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import get_llm to avoid pulling in langchain-openai at import time."""
    if name == "get_llm":
        from atlas_rag.generation.llm import get_llm

        return get_llm
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
