"""Semantic retriever — k-NN search with citation tracking.

Usage::

    retriever = SemanticRetriever(store, embedder)
    result = retriever.retrieve("What is the refund policy?")
    print(result.context_text)
"""

from __future__ import annotations

import logging
from typing import Any

from atlas_rag.errors import DimensionMismatchError
from atlas_rag.ingestion.embedder import EmbeddingClient
from atlas_rag.retrieval.base import VectorStoreBase
from atlas_rag.retrieval.index_manager import DEFAULT_INDEX_NAME
from atlas_rag.retrieval.models import Citation, RetrievalResult, RetrievedChunk
from atlas_rag.retrieval.schema import DEFAULT_EMBEDDING_FIELD, SchemaResolver

logger = logging.getLogger(__name__)


def _rank_key(hit: dict[str, Any]) -> tuple:
    # Ties on score fall back to file order so repeated queries rank identically.
    meta = hit.get("metadata") or {}
    return (
        -(hit.get("score") or 0.0),
        str(meta.get("source", "")),
        meta.get("chunk_index", 0),
        str(hit.get("id", "")),
    )


class SemanticRetriever:
    """Embed a question and fetch the nearest chunks of one collection.

    Parameters
    ----------
    store:
        Backend holding the chunk collection.
    embedder:
        Client for the provider the question is embedded with.
    index_name:
        Name of the collection's vector index.
    default_k:
        Number of chunks returned by :meth:`retrieve`.
    num_candidates:
        Candidate pool the approximate search considers internally.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embedder: EmbeddingClient,
        *,
        index_name: str = DEFAULT_INDEX_NAME,
        default_k: int = 3,
        num_candidates: int = 100,
        resolver: SchemaResolver | None = None,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._index_name = index_name
        self._resolver = resolver or SchemaResolver(store)
        self.default_k = default_k
        self.num_candidates = num_candidates

    def retrieve(
        self,
        question: str,
        *,
        k: int | None = None,
        num_candidates: int | None = None,
    ) -> RetrievalResult:
        """Return the top-*k* chunks for *question*, ranked by cosine similarity.

        An empty collection yields a result without chunks.

        Raises
        ------
        DimensionMismatchError
            The collection's vectors differ in length from the configured
            provider's output; raised before any embedding or search call.
        EmbeddingProviderError
            The question could not be embedded.
        """
        k = k or self.default_k
        num_candidates = max(num_candidates or self.num_candidates, k)

        schema = self._resolver.resolve()
        if schema is None:
            logger.info("Collection '%s' holds no vectors", self._store.collection_name)
            return RetrievalResult(question=question, field_path=DEFAULT_EMBEDDING_FIELD)
        if schema.dimension is not None and schema.dimension != self._embedder.dimension:
            raise DimensionMismatchError(
                expected=schema.dimension,
                actual=self._embedder.dimension,
                field_path=schema.field_path,
            )

        query_vector = self._embedder.embed_query(question)
        logger.info("Using embedding field path for search: %s", schema.field_path)
        hits = self._store.vector_search(
            index_name=self._index_name,
            field_path=schema.field_path,
            query_vector=query_vector,
            k=k,
            num_candidates=num_candidates,
        )
        ranked = sorted(hits, key=_rank_key)[:k]
        return RetrievalResult(
            question=question,
            field_path=schema.field_path,
            chunks=self._to_chunks(ranked),
        )

    @staticmethod
    def _to_chunks(hits: list[dict[str, Any]]) -> list[RetrievedChunk]:
        chunks: list[RetrievedChunk] = []
        for position, hit in enumerate(hits, 1):
            citation = Citation.from_hit(hit)
            chunks.append(
                RetrievedChunk(
                    content=hit.get("text", ""),
                    citation=citation,
                    label=citation.label(position),
                )
            )
        return chunks
