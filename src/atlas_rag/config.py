"""Shared configuration loaded from environment / ``.env``.

:class:`Settings` holds the process-wide defaults.  It is built once by
:func:`get_settings` at the entry point and never read by the components
themselves; they receive the small immutable config objects below.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from atlas_rag.errors import ConfigurationError

EmbeddingProvider = Literal["openai", "voyageai", "huggingface"]

DEFAULT_EMBEDDING_MODELS: dict[str, str] = {
    "openai": "text-embedding-ada-002",
    "voyageai": "voyage-3",
    "huggingface": "sentence-transformers/all-MiniLM-L6-v2",
}

# Output length of each provider family.
PROVIDER_DIMENSIONS: dict[str, int] = {
    "openai": 1536,
    "voyageai": 1024,
    "huggingface": 384,
}

# Models whose output length differs from their provider family.
MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-large": 3072,
    "voyage-3-lite": 512,
    "voyage-3-large": 1024,
    "voyage-code-2": 1536,
    "sentence-transformers/all-mpnet-base-v2": 768,
}

_MONGODB_SCHEMES = ("mongodb://", "mongodb+srv://")


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # MongoDB Atlas
    mongodb_uri: str = Field(default="", description="MongoDB Atlas connection string")
    database_name: str = "rag_demo"
    collection_name: str = "docs"
    vector_index_name: str = "rag_demo_index"
    schema_registry_collection: str = "rag_collection_schemas"
    source_registry_collection: str = "rag_sources"

    # Embedding
    embedding_provider: EmbeddingProvider = "voyageai"
    embedding_model: str = Field(
        default="",
        description="Embedding model id. Leave empty to use the provider default.",
    )
    openai_api_key: str = ""
    voyageai_api_key: str = ""
    embedding_batch_size: int = 32
    embedding_concurrency: int = 4

    # Completion
    completion_model: str = "gpt-3.5-turbo-instruct"
    completion_max_tokens: int = 500
    llm_base_url: str = Field(
        default="",
        description="Base URL of an OpenAI-compatible completion API. Empty means OpenAI cloud.",
    )

    # Pipeline
    chunk_size: int = 1000
    chunk_overlap: int = 200
    retrieval_k: int = 3
    retrieval_candidates: int = 100
    request_timeout_seconds: float = 30.0

    # Serving
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", frozen=True)

    # -- factories ------------------------------------------------------------

    def store_config(
        self,
        *,
        connection_uri: str | None = None,
        database_name: str | None = None,
        collection_name: str | None = None,
    ) -> StoreConfig:
        """Build a :class:`StoreConfig`, request values taking precedence."""
        return StoreConfig(
            connection_uri=connection_uri or self.mongodb_uri,
            database_name=database_name or self.database_name,
            collection_name=collection_name or self.collection_name,
            index_name=self.vector_index_name,
            schema_registry=self.schema_registry_collection,
            source_registry=self.source_registry_collection,
            timeout_seconds=self.request_timeout_seconds,
        )

    def embedding_config(
        self,
        *,
        provider: EmbeddingProvider | None = None,
        model: str | None = None,
        openai_api_key: str | None = None,
        voyageai_api_key: str | None = None,
    ) -> EmbeddingConfig:
        provider = provider or self.embedding_provider
        if provider == "openai":
            api_key = openai_api_key or self.openai_api_key
        elif provider == "voyageai":
            api_key = voyageai_api_key or self.voyageai_api_key
        else:
            api_key = ""
        return EmbeddingConfig(
            provider=provider,
            model=model or self.embedding_model or DEFAULT_EMBEDDING_MODELS[provider],
            api_key=api_key,
            batch_size=self.embedding_batch_size,
            concurrency=self.embedding_concurrency,
            timeout_seconds=self.request_timeout_seconds,
        )

    def completion_config(self, *, openai_api_key: str | None = None) -> CompletionConfig:
        return CompletionConfig(
            api_key=openai_api_key or self.openai_api_key,
            model=self.completion_model,
            max_tokens=self.completion_max_tokens,
            base_url=self.llm_base_url,
            timeout_seconds=self.request_timeout_seconds,
        )


class StoreConfig(BaseModel):
    """Where chunks, schema records and source claims live."""

    model_config = ConfigDict(frozen=True)

    connection_uri: str
    database_name: str
    collection_name: str
    index_name: str = "rag_demo_index"
    schema_registry: str = "rag_collection_schemas"
    source_registry: str = "rag_sources"
    timeout_seconds: float = 30.0

    def ensure_complete(self) -> None:
        if not self.connection_uri:
            raise ConfigurationError("MongoDB connection string is required")
        if not self.connection_uri.startswith(_MONGODB_SCHEMES):
            raise ConfigurationError(
                "MongoDB connection string must start with 'mongodb://' or 'mongodb+srv://'"
            )
        if not self.database_name.strip():
            raise ConfigurationError("Database name is required")
        if not self.collection_name.strip():
            raise ConfigurationError("Collection name is required")
        if self.collection_name in (self.schema_registry, self.source_registry):
            raise ConfigurationError(
                f"Collection name {self.collection_name!r} is reserved for internal bookkeeping"
            )


class EmbeddingConfig(BaseModel):
    """Provider/model pair used to turn text into vectors."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    provider: EmbeddingProvider = "voyageai"
    model: str = DEFAULT_EMBEDDING_MODELS["voyageai"]
    api_key: str = ""
    dimensions: int | None = Field(
        default=None,
        description="Explicit output length; overrides the provider/model table.",
    )
    batch_size: int = Field(default=32, ge=1)
    concurrency: int = Field(default=4, ge=1)
    timeout_seconds: float = 30.0

    @property
    def dimension(self) -> int:
        if self.dimensions is not None:
            return self.dimensions
        return MODEL_DIMENSIONS.get(self.model, PROVIDER_DIMENSIONS[self.provider])

    def ensure_complete(self) -> None:
        if not self.model:
            raise ConfigurationError("Embedding model is required")
        if self.provider != "huggingface" and not self.api_key:
            raise ConfigurationError(f"API key for embedding provider {self.provider!r} is required")


class CompletionConfig(BaseModel):
    """Settings for the answer-synthesis completion call."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    api_key: str = ""
    model: str = "gpt-3.5-turbo-instruct"
    max_tokens: int = Field(default=500, ge=1)
    temperature: float = 0.0
    base_url: str = ""
    timeout_seconds: float = 30.0

    def ensure_complete(self) -> None:
        # A self-hosted OpenAI-compatible endpoint may not need a key.
        if not self.api_key and not self.base_url:
            raise ConfigurationError("OpenAI API key is required for answer generation")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process settings, reading the environment on first call."""
    return Settings()
