"""Request / response schemas of the four public operations.

Requests accept the camelCase JSON keys used by the web client
(``mongodbUri``, ``collectionName``, ``apiProvider`` …) as well as the
snake_case field names.  Responses are serialized with camelCase keys
(``contextText``, ``perFileStats``, ``totalDocuments`` …).
"""

from __future__ import annotations

import base64
import binascii

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from atlas_rag.config import EmbeddingProvider
from atlas_rag.ingestion.models import BatchTiming, FileStat, IngestionTotals, SourceDocument


# ── Requests ──────────────────────────────────────────────────────────


class _Request(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    mongodb_uri: str = ""
    database_name: str = ""
    collection_name: str = ""


class _EmbeddingRequest(_Request):
    api_provider: EmbeddingProvider | None = None
    embedding_model: str | None = None
    openai_api_key: str | None = None
    voyageai_api_key: str | None = None


class CreateIndexRequest(_EmbeddingRequest):
    """Create the collection and its vector index, optionally wiping it first."""

    reset: bool = False


class FileUpload(BaseModel):
    """A file as sent by the client: name, MIME type and base64 content."""

    name: str = Field(min_length=1)
    type: str = ""
    content: str

    @field_validator("content")
    @classmethod
    def _must_be_base64(cls, value: str) -> str:
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("content must be base64 encoded") from exc
        return value

    def decode(self) -> bytes:
        return base64.b64decode(self.content)


class IngestRequest(_EmbeddingRequest):
    files: list[FileUpload] = Field(default_factory=list)


class QueryRequest(_EmbeddingRequest):
    question: str = Field(min_length=1)
    k: int | None = Field(default=None, ge=1)


class StatsRequest(_Request):
    pass


# ── Responses ─────────────────────────────────────────────────────────


class OperationResult(BaseModel):
    """Fields shared by every response: a failure never raises."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    message: str | None = None
    error: str | None = None
    error_type: str | None = None


class IndexResponse(OperationResult):
    field_path: str | None = None
    dimension: int | None = None


class IngestResponse(OperationResult):
    ingested_documents: list[SourceDocument] = Field(default_factory=list)
    file_stats: list[FileStat] = Field(default_factory=list, alias="perFileStats")
    totals: IngestionTotals = Field(default_factory=IngestionTotals)
    timing: BatchTiming = Field(default_factory=BatchTiming)
    field_path: str | None = None


class QueryResponse(OperationResult):
    context_text: str = ""
    sources: list[str] = Field(default_factory=list)
    answer_text: str = ""
    num_retrieved_chunks: int = 0


class CollectionStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_documents: int = 0
    total_chunks: int = 0
    unique_sources: list[str] = Field(default_factory=list)
    document_type_counts: dict[str, int] = Field(default_factory=dict)
    embedding_dimension: int | None = None
    embedding_field_path: str | None = None


class StatsResponse(OperationResult):
    stats: CollectionStats | None = None
