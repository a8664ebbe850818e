"""LLM initialisation — single place to swap providers.

Answers come from a text-completion model (``gpt-3.5-turbo-instruct`` by
default).  Setting ``CompletionConfig.base_url`` points the client at any
OpenAI-compatible endpoint instead of the OpenAI cloud.
"""

from __future__ import annotations

import logging

from langchain_openai import OpenAI

from atlas_rag.config import CompletionConfig

logger = logging.getLogger(__name__)


def get_llm(config: CompletionConfig) -> OpenAI:
    """Return the configured completion model.

    Temperature comes from *config* (0 unless overridden) and retries are
    disabled: a failed call surfaces immediately.
    """
    kwargs: dict = {
        "model": config.model,
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
        "timeout": config.timeout_seconds,
        "max_retries": 0,
    }

    if config.base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", config.base_url)
        kwargs["base_url"] = config.base_url
        # Self-hosted endpoints often need no key; the client requires a non-empty value.
        kwargs["api_key"] = config.api_key or "EMPTY"
    else:
        kwargs["api_key"] = config.api_key

    return OpenAI(**kwargs)
