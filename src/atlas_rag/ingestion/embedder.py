"""Embedding client — provider selection, batching and bounded fan-out.

The provider/model pair comes from :class:`~atlas_rag.config.EmbeddingConfig`
and is never autodetected.  Backends are LangChain ``Embeddings``:

* ``openai`` — :class:`langchain_openai.OpenAIEmbeddings` (1536-d family)
* ``voyageai`` — :class:`VoyageAIEmbeddings`, a small httpx client (1024-d family)
* ``huggingface`` — local :class:`langchain_huggingface.HuggingFaceEmbeddings`

Every provider failure surfaces as :class:`EmbeddingProviderError`.  There is
no retry and no fallback: a vector is never guessed.
"""

from __future__ import annotations

import logging
from concurrent.futures import ALL_COMPLETED, FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import overload

import httpx
import openai
from langchain_core.embeddings import Embeddings

from atlas_rag.config import EmbeddingConfig
from atlas_rag.errors import EmbeddingProviderError

logger = logging.getLogger(__name__)

VOYAGEAI_BASE_URL = "https://api.voyageai.com/v1"


class VoyageAIEmbeddings(Embeddings):
    """Minimal VoyageAI client speaking the ``/v1/embeddings`` REST API."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str = VOYAGEAI_BASE_URL,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        try:
            response = httpx.post(
                f"{self._base_url}/embeddings",
                headers={"Authorization": f"Bearer {self._api_key}"},
                json={"model": self._model, "input": texts},
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise EmbeddingProviderError(
                "VoyageAI", exc.response.text or exc.response.reason_phrase,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise EmbeddingProviderError("VoyageAI", str(exc)) from exc

        try:
            data = response.json().get("data")
        except ValueError as exc:
            raise EmbeddingProviderError("VoyageAI", "Invalid embeddings payload: not JSON") from exc
        if not isinstance(data, list):
            raise EmbeddingProviderError("VoyageAI", "Invalid embeddings payload: missing data")

        vectors: list[list[float]] = []
        for item in data:
            embedding = item.get("embedding") if isinstance(item, dict) else None
            if not isinstance(embedding, list) or not embedding:
                raise EmbeddingProviderError("VoyageAI", "Invalid embeddings payload: missing embedding vector")
            vectors.append([float(value) for value in embedding])
        return vectors

    def embed_query(self, text: str) -> list[float]:
        return self.embed_documents([text])[0]


def build_backend(config: EmbeddingConfig) -> Embeddings:
    """Instantiate the LangChain embeddings backend for *config*."""
    if config.provider == "openai":
        from langchain_openai import OpenAIEmbeddings

        return OpenAIEmbeddings(
            model=config.model,
            api_key=config.api_key,
            timeout=config.timeout_seconds,
            max_retries=0,
        )
    if config.provider == "voyageai":
        return VoyageAIEmbeddings(
            api_key=config.api_key,
            model=config.model,
            timeout_seconds=config.timeout_seconds,
        )
    from langchain_huggingface import HuggingFaceEmbeddings

    return HuggingFaceEmbeddings(model_name=config.model)


class EmbeddingClient:
    """Turn chunk texts or a query into vectors of a fixed dimension.

    Parameters
    ----------
    config:
        Provider, model, batch size and worker-pool bound.
    backend:
        Pre-built LangChain ``Embeddings``; built from *config* when *None*.
    """

    def __init__(self, config: EmbeddingConfig, *, backend: Embeddings | None = None) -> None:
        self._config = config
        self._backend = backend if backend is not None else build_backend(config)

    @property
    def provider(self) -> str:
        return self._config.provider

    @property
    def model(self) -> str:
        return self._config.model

    @property
    def dimension(self) -> int:
        return self._config.dimension

    # -- public API -----------------------------------------------------------

    @overload
    def embed(self, text: str) -> list[float]: ...

    @overload
    def embed(self, text: list[str]) -> list[list[float]]: ...

    def embed(self, text: str | list[str]) -> list[float] | list[list[float]]:
        """Embed one string or a list of strings."""
        if isinstance(text, str):
            return self.embed_query(text)
        return self.embed_documents(text)

    def embed_query(self, text: str) -> list[float]:
        vector = self._call(lambda: [self._backend.embed_query(text)], expected=1)
        return vector[0]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in batches, at most ``concurrency`` batches in flight.

        Output order matches input order.  The first failing batch raises
        once the batches already in flight have finished.
        """
        size = self._config.batch_size
        batches = [texts[start : start + size] for start in range(0, len(texts), size)]
        logger.debug(
            "Embedding %d texts with %s/%s in %d batches", len(texts), self.provider, self.model, len(batches)
        )
        if len(batches) <= 1 or self._config.concurrency == 1:
            return [vector for batch in batches for vector in self._embed_batch(batch)]

        results: list[list[list[float]]] = [[] for _ in batches]
        pending: dict[Future[list[list[float]]], int] = {}
        with ThreadPoolExecutor(
            max_workers=self._config.concurrency, thread_name_prefix="embed"
        ) as pool:
            for position, batch in enumerate(batches):
                if len(pending) >= self._config.concurrency:
                    self._drain(pending, results, return_when=FIRST_COMPLETED)
                pending[pool.submit(self._embed_batch, batch)] = position
            self._drain(pending, results)
        return [vector for batch in results for vector in batch]

    # -- internals ------------------------------------------------------------

    @staticmethod
    def _drain(
        pending: dict[Future[list[list[float]]], int],
        results: list[list[list[float]]],
        return_when: str = ALL_COMPLETED,
    ) -> None:
        done, _ = wait(pending, return_when=return_when)
        for future in done:
            results[pending.pop(future)] = future.result()

    def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        return self._call(lambda: self._backend.embed_documents(batch), expected=len(batch))

    def _call(self, fn, *, expected: int) -> list[list[float]]:
        name = self._config.provider
        try:
            raw = fn()
        except EmbeddingProviderError:
            raise
        except openai.APIStatusError as exc:
            raise EmbeddingProviderError(name, exc.message, status_code=exc.status_code) from exc
        except openai.OpenAIError as exc:
            raise EmbeddingProviderError(name, str(exc)) from exc
        except Exception as exc:  # noqa: BLE001 - local models raise anything
            raise EmbeddingProviderError(name, f"{type(exc).__name__}: {exc}") from exc

        if len(raw) != expected:
            raise EmbeddingProviderError(
                name, f"Invalid embeddings payload: expected {expected} vectors, got {len(raw)}"
            )
        vectors = [[float(value) for value in vector] for vector in raw]
        for vector in vectors:
            if len(vector) != self.dimension:
                raise EmbeddingProviderError(
                    name,
                    f"Invalid embeddings payload: expected {self.dimension} dimensions "
                    f"from {self.model}, got {len(vector)}",
                )
        return vectors
