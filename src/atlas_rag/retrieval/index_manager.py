"""Vector-index lifecycle: non-destructive ensure and destructive reset."""

from __future__ import annotations

import logging

from atlas_rag.errors import DimensionMismatchError
from atlas_rag.retrieval.base import VectorStoreBase
from atlas_rag.retrieval.models import CollectionSchema
from atlas_rag.retrieval.schema import DEFAULT_EMBEDDING_FIELD, SchemaResolver

logger = logging.getLogger(__name__)

DEFAULT_INDEX_NAME = "rag_demo_index"


class IndexManager:
    """Create or reset the single vector index of a collection.

    The index is bound to the schema's field path and dimension at creation
    time.  A collection whose recorded dimension differs from the active
    provider can only be re-indexed through :meth:`reset_and_index`.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        *,
        index_name: str = DEFAULT_INDEX_NAME,
        resolver: SchemaResolver | None = None,
    ) -> None:
        self._store = store
        self._index_name = index_name
        self._resolver = resolver or SchemaResolver(store)

    @property
    def index_name(self) -> str:
        return self._index_name

    def ensure_index(
        self,
        *,
        dimension: int,
        provider: str,
        field_path: str | None = None,
    ) -> CollectionSchema:
        """Create the collection, schema record and index only where absent.

        Existing chunks are left untouched.  The schema is recorded before
        the index is created, so it survives an
        :class:`~atlas_rag.errors.IndexPermissionError`.

        Raises
        ------
        DimensionMismatchError
            The collection already holds vectors of another length.
        """
        schema = self._resolver.resolve()
        if schema is None or schema.dimension is None:
            schema = self._resolver.record(
                field_path=schema.field_path if schema else field_path or DEFAULT_EMBEDDING_FIELD,
                dimension=dimension,
                provider=provider,
            )
        elif schema.dimension != dimension:
            raise DimensionMismatchError(
                expected=schema.dimension, actual=dimension, field_path=schema.field_path
            )

        self._store.create_collection()
        self._create_index(schema)
        return schema

    def reset_and_index(
        self,
        *,
        dimension: int,
        provider: str,
        field_path: str | None = None,
    ) -> CollectionSchema:
        """Drop the collection with its chunks, claims and schema, then re-create it.

        The field path is resolved before the drop so a reset keeps the
        collection's naming convention unless *field_path* overrides it.
        """
        field_path = field_path or self._resolver.resolve_field_path()

        self._store.drop_collection()
        self._store.delete_schema()
        self._store.clear_sources()
        logger.info("Collection '%s' reset", self._store.collection_name)

        self._store.create_collection()
        schema = self._resolver.record(field_path=field_path, dimension=dimension, provider=provider)
        self._create_index(schema)
        return schema

    def _create_index(self, schema: CollectionSchema) -> None:
        created = self._store.create_vector_index(
            self._index_name, schema.field_path, schema.dimension
        )
        if created:
            logger.info(
                "Vector search index '%s' created with field path %s and %d dimensions",
                self._index_name,
                schema.field_path,
                schema.dimension,
            )
        else:
            logger.info("Vector search index '%s' already exists", self._index_name)
