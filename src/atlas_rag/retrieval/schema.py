"""Schema resolution — which field holds the vectors of a collection.

The schema registry record is authoritative.  Collections created before
the registry existed are handled by sniffing: the known vector field names
are tried in priority order and the first one present on any stored chunk
wins.  A sniffed schema is written back to the registry so sniffing runs
at most once per collection; read-only callers pass ``persist=False``.
"""

from __future__ import annotations

import logging

from atlas_rag.config import PROVIDER_DIMENSIONS
from atlas_rag.retrieval.base import VectorStoreBase
from atlas_rag.retrieval.models import CollectionSchema

logger = logging.getLogger(__name__)

# Newest convention first, legacy last.
EMBEDDING_FIELD_CANDIDATES: tuple[str, ...] = ("embeddingVector", "embedding", "plot_embedding")
DEFAULT_EMBEDDING_FIELD = "embedding"


def sniff_field_path(store: VectorStoreBase) -> str | None:
    """Return the highest-priority known vector field present in *store*."""
    for field_path in EMBEDDING_FIELD_CANDIDATES:
        if store.find_one_with_field(field_path) is not None:
            return field_path
    return None


def _provider_for_dimension(dimension: int | None) -> str | None:
    matches = [name for name, size in PROVIDER_DIMENSIONS.items() if size == dimension]
    return matches[0] if len(matches) == 1 else None


class SchemaResolver:
    """Resolve and record the :class:`CollectionSchema` of one collection."""

    def __init__(self, store: VectorStoreBase) -> None:
        self._store = store

    def resolve(self, *, persist: bool = True) -> CollectionSchema | None:
        """Return the recorded schema, migrating a legacy collection if needed.

        ``None`` means the collection holds no vectors and has no record.
        With ``persist=False`` a sniffed schema is returned without being
        written to the registry.
        """
        record = self._store.load_schema()
        if record is not None:
            return CollectionSchema.model_validate(record)

        field_path = sniff_field_path(self._store)
        if field_path is None:
            return None

        sample = self._store.find_one_with_field(field_path) or {}
        vector = sample.get(field_path)
        dimension = len(vector) if isinstance(vector, list) and vector else None
        schema = CollectionSchema(
            collection=self._store.collection_name,
            field_path=field_path,
            dimension=dimension,
            provider=_provider_for_dimension(dimension),
        )
        if not persist:
            return schema

        logger.info(
            "Migrated legacy collection '%s': field=%s dimension=%s",
            schema.collection,
            field_path,
            dimension,
        )
        self._store.save_schema(schema.model_dump())
        return schema

    def resolve_field_path(self) -> str:
        """Return the collection's vector field, or the default for a fresh one."""
        schema = self.resolve()
        return schema.field_path if schema is not None else DEFAULT_EMBEDDING_FIELD

    def record(self, *, field_path: str, dimension: int, provider: str) -> CollectionSchema:
        """Write a fresh schema record for the collection."""
        schema = CollectionSchema(
            collection=self._store.collection_name,
            field_path=field_path,
            dimension=dimension,
            provider=provider,
        )
        self._store.save_schema(schema.model_dump())
        return schema
