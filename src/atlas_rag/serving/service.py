"""Transport-agnostic implementation of the four public operations.

Every operation validates its configuration before any remote call,
opens a store for the duration of the call, and returns a structured
response: errors never escape this layer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from langchain_core.language_models import BaseLanguageModel

from atlas_rag.config import CompletionConfig, EmbeddingConfig, Settings, StoreConfig
from atlas_rag.errors import CompletionProviderError, RagError
from atlas_rag.generation.synthesizer import AnswerSynthesizer
from atlas_rag.ingestion.coordinator import IngestionCoordinator
from atlas_rag.ingestion.embedder import EmbeddingClient
from atlas_rag.ingestion.models import SourceFile
from atlas_rag.retrieval.base import VectorStoreBase
from atlas_rag.retrieval.index_manager import IndexManager
from atlas_rag.retrieval.retriever import SemanticRetriever
from atlas_rag.retrieval.schema import SchemaResolver
from atlas_rag.serving.schemas import (
    CollectionStats,
    CreateIndexRequest,
    IndexResponse,
    IngestRequest,
    IngestResponse,
    OperationResult,
    QueryRequest,
    QueryResponse,
    StatsRequest,
    StatsResponse,
    _EmbeddingRequest,
    _Request,
)

logger = logging.getLogger(__name__)

StoreFactory = Callable[[StoreConfig], VectorStoreBase]
EmbeddingFactory = Callable[[EmbeddingConfig], EmbeddingClient]
LLMFactory = Callable[[CompletionConfig], BaseLanguageModel]

R = TypeVar("R", bound=OperationResult)


def _mongo_store(config: StoreConfig) -> VectorStoreBase:
    from atlas_rag.retrieval.mongo_store import MongoVectorStore

    return MongoVectorStore(config)


def _default_llm(config: CompletionConfig) -> BaseLanguageModel:
    from atlas_rag.generation.llm import get_llm

    return get_llm(config)


class RagService:
    """Entry point for index management, ingestion, querying and stats.

    Parameters
    ----------
    settings:
        Process defaults; request values take precedence.
    store_factory / embedding_factory / llm_factory:
        Builders for the external collaborators.  Default to MongoDB Atlas,
        the configured embedding provider and the OpenAI completion model.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        store_factory: StoreFactory | None = None,
        embedding_factory: EmbeddingFactory | None = None,
        llm_factory: LLMFactory | None = None,
    ) -> None:
        self._settings = settings
        self._store_factory = store_factory or _mongo_store
        self._embedding_factory = embedding_factory or EmbeddingClient
        self._llm_factory = llm_factory or _default_llm

    # -- operations -------------------------------------------------------------

    def create_or_reset_index(self, request: CreateIndexRequest) -> IndexResponse:
        def run() -> IndexResponse:
            store_config = self._store_config(request)
            embedding_config = self._embedding_config(request)
            store_config.ensure_complete()

            with self._store_factory(store_config) as store:
                manager = IndexManager(store, index_name=store_config.index_name)
                if request.reset:
                    schema = manager.reset_and_index(
                        dimension=embedding_config.dimension, provider=embedding_config.provider
                    )
                    prefix = "Collection reset and vector search index"
                else:
                    schema = manager.ensure_index(
                        dimension=embedding_config.dimension, provider=embedding_config.provider
                    )
                    prefix = "Collection and vector search index"
            return IndexResponse(
                message=(
                    f"{prefix} created successfully with field: "
                    f"{schema.field_path} ({schema.dimension}D)"
                ),
                field_path=schema.field_path,
                dimension=schema.dimension,
            )

        return self._guard("CreateOrResetIndex", IndexResponse, run)

    def ingest_documents(self, request: IngestRequest) -> IngestResponse:
        def run() -> IngestResponse:
            store_config = self._store_config(request)
            embedding_config = self._embedding_config(request)
            store_config.ensure_complete()
            embedding_config.ensure_complete()
            files = [
                SourceFile(name=upload.name, content=upload.decode(), content_type=upload.type)
                for upload in request.files
            ]

            with self._store_factory(store_config) as store:
                coordinator = IngestionCoordinator(
                    store,
                    self._embedding_factory(embedding_config),
                    index_manager=IndexManager(store, index_name=store_config.index_name),
                    chunk_size=self._settings.chunk_size,
                    chunk_overlap=self._settings.chunk_overlap,
                )
                report = coordinator.ingest(files)
            return IngestResponse(
                message=f"Processed {report.totals.new_documents} of {len(files)} documents successfully",
                **report.model_dump(),
            )

        return self._guard("IngestDocuments", IngestResponse, run)

    def query_documents(self, request: QueryRequest) -> QueryResponse:
        def run() -> QueryResponse:
            store_config = self._store_config(request)
            embedding_config = self._embedding_config(request)
            completion_config = self._settings.completion_config(openai_api_key=request.openai_api_key)
            store_config.ensure_complete()
            embedding_config.ensure_complete()
            completion_config.ensure_complete()

            with self._store_factory(store_config) as store:
                retriever = SemanticRetriever(
                    store,
                    self._embedding_factory(embedding_config),
                    index_name=store_config.index_name,
                    default_k=self._settings.retrieval_k,
                    num_candidates=self._settings.retrieval_candidates,
                )
                result = retriever.retrieve(request.question, k=request.k)

            response = QueryResponse(
                context_text=result.context_text,
                sources=result.sources,
                num_retrieved_chunks=len(result.chunks),
            )
            synthesizer = AnswerSynthesizer(self._llm_factory(completion_config))
            try:
                response.answer_text = synthesizer.synthesize(request.question, result.context_text)
            except CompletionProviderError as exc:
                # Keep the retrieved context visible; the answer is not fabricated.
                response.success = False
                response.error = exc.message
                response.error_type = exc.error_type
            return response

        return self._guard("QueryDocuments", QueryResponse, run)

    def get_collection_stats(self, request: StatsRequest) -> StatsResponse:
        def run() -> StatsResponse:
            store_config = self._store_config(request)
            store_config.ensure_complete()

            with self._store_factory(store_config) as store:
                total_chunks = store.count_chunks()
                sources = store.distinct_sources()
                type_counts = store.count_by_file_type()
                schema = SchemaResolver(store).resolve(persist=False) if total_chunks else None

            return StatsResponse(
                stats=CollectionStats(
                    total_documents=len(sources),
                    total_chunks=total_chunks,
                    unique_sources=sources,
                    document_type_counts={(key or "UNKNOWN"): count for key, count in type_counts.items()},
                    embedding_dimension=schema.dimension if schema else None,
                    embedding_field_path=schema.field_path if schema else None,
                )
            )

        return self._guard("GetCollectionStats", StatsResponse, run)

    # -- internals ----------------------------------------------------------------

    def _store_config(self, request: _Request) -> StoreConfig:
        return self._settings.store_config(
            connection_uri=request.mongodb_uri,
            database_name=request.database_name,
            collection_name=request.collection_name,
        )

    def _embedding_config(self, request: _EmbeddingRequest) -> EmbeddingConfig:
        return self._settings.embedding_config(
            provider=request.api_provider,
            model=request.embedding_model,
            openai_api_key=request.openai_api_key,
            voyageai_api_key=request.voyageai_api_key,
        )

    @staticmethod
    def _guard(operation: str, response_cls: type[R], run: Callable[[], R]) -> R:
        try:
            return run()
        except RagError as exc:
            logger.error("%s failed (%s): %s", operation, exc.error_type, exc.message)
            return response_cls(success=False, error=exc.message, error_type=exc.error_type)
        except Exception as exc:  # noqa: BLE001 - nothing crosses the operation boundary
            logger.exception("%s failed unexpectedly", operation)
            return response_cls(success=False, error=str(exc) or type(exc).__name__, error_type="internal_error")
