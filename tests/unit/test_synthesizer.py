"""Unit tests for prompt rendering and answer synthesis."""

from __future__ import annotations

import httpx
import pytest
from langchain_core.language_models.fake import FakeListLLM

from atlas_rag.config import CompletionConfig
from atlas_rag.errors import CompletionProviderError, ConfigurationError
from atlas_rag.generation.prompts import build_rag_prompt
from atlas_rag.generation.synthesizer import AnswerSynthesizer


def test_prompt_embeds_context_and_question() -> None:
    prompt = build_rag_prompt("What is the refund window?", "[Source 1: p.pdf (PDF), Page 2]\n30 days")
    assert prompt.startswith("Use the following pieces of context")
    assert "[Source 1: p.pdf (PDF), Page 2]\n30 days" in prompt
    assert "Question: What is the refund window?" in prompt
    assert prompt.rstrip().endswith("Helpful Answer:")


def test_synthesize_returns_stripped_answer() -> None:
    llm = FakeListLLM(responses=["  Refunds are accepted for 30 days.\n"])
    answer = AnswerSynthesizer(llm).synthesize("refund?", "context")
    assert answer == "Refunds are accepted for 30 days."


def test_transport_failure_becomes_completion_error() -> None:
    class Unreachable(FakeListLLM):
        def _call(self, prompt, stop=None, run_manager=None, **kwargs):
            raise httpx.ConnectTimeout("timed out")

    with pytest.raises(CompletionProviderError) as exc_info:
        AnswerSynthesizer(Unreachable(responses=[""])).synthesize("q", "c")
    assert exc_info.value.message == "OpenAI API error: timed out"


def test_completion_config_requires_key_or_base_url() -> None:
    with pytest.raises(ConfigurationError):
        CompletionConfig().ensure_complete()
    CompletionConfig(base_url="http://localhost:8000/v1").ensure_complete()
    CompletionConfig(api_key="sk-test").ensure_complete()


def test_get_llm_is_deterministic_and_bounded() -> None:
    from atlas_rag.generation.llm import get_llm

    llm = get_llm(CompletionConfig(api_key="sk-test"))

    assert llm.model_name == "gpt-3.5-turbo-instruct"
    assert llm.temperature == 0
    assert llm.max_tokens == 500
    assert llm.max_retries == 0


def test_get_llm_targets_compatible_endpoint() -> None:
    from atlas_rag.generation.llm import get_llm

    llm = get_llm(CompletionConfig(base_url="http://localhost:8000/v1"))
    assert llm.openai_api_base == "http://localhost:8000/v1"
