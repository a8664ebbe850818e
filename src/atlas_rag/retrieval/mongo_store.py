"""MongoDB Atlas implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from pymongo import ASCENDING, MongoClient
from pymongo.errors import CollectionInvalid, DuplicateKeyError, OperationFailure, PyMongoError
from pymongo.operations import SearchIndexModel

from atlas_rag.config import StoreConfig
from atlas_rag.errors import IndexPermissionError, VectorStoreError
from atlas_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)

_INDEX_ALREADY_EXISTS = 68
_NAMESPACE_NOT_FOUND = 26
_UNAUTHORIZED = 13


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """Re-raise driver errors as :class:`VectorStoreError` with the server message."""
    try:
        yield
    except PyMongoError as exc:
        logger.error("MongoDB %s failed: %s", action, exc)
        raise VectorStoreError(f"MongoDB {action} failed: {exc}") from exc


class MongoVectorStore(VectorStoreBase):
    """Atlas Vector Search backed store.

    Parameters
    ----------
    config:
        Connection string, database, collection and registry names.
    client:
        Pre-built ``MongoClient`` to share; created from *config* when *None*
        and then closed by :meth:`close`.
    """

    def __init__(self, config: StoreConfig, *, client: MongoClient | None = None) -> None:
        super().__init__(config.collection_name)
        self._owns_client = client is None
        if client is None:
            timeout_ms = int(config.timeout_seconds * 1000)
            client = MongoClient(
                config.connection_uri,
                serverSelectionTimeoutMS=timeout_ms,
                connectTimeoutMS=timeout_ms,
                socketTimeoutMS=timeout_ms,
                appname="atlas-rag",
            )
        self._client = client
        self._database = client[config.database_name]
        self._collection = self._database[config.collection_name]
        self._schemas = self._database[config.schema_registry]
        self._sources = self._database[config.source_registry]
        self._sources_indexed = False

    # -- collection & index lifecycle -----------------------------------------

    def collection_exists(self) -> bool:
        with _store_errors("listCollections"):
            return bool(self._database.list_collection_names(filter={"name": self.collection_name}))

    def create_collection(self) -> None:
        if self.collection_exists():
            logger.info("Collection '%s' already exists", self.collection_name)
            return
        with _store_errors("createCollection"):
            try:
                self._database.create_collection(self.collection_name)
            except CollectionInvalid:
                # Created concurrently by another request.
                return
        logger.info("Collection '%s' created", self.collection_name)

    def drop_collection(self) -> None:
        with _store_errors("drop"):
            try:
                self._database.drop_collection(self.collection_name)
            except OperationFailure as exc:
                if exc.code != _NAMESPACE_NOT_FOUND:
                    raise
                logger.info("Collection '%s' did not exist", self.collection_name)
                return
        logger.info("Collection '%s' dropped", self.collection_name)

    def create_vector_index(self, index_name: str, field_path: str, dimension: int) -> bool:
        model = SearchIndexModel(
            name=index_name,
            type="vectorSearch",
            definition={
                "fields": [
                    {
                        "type": "vector",
                        "path": field_path,
                        "numDimensions": dimension,
                        "similarity": "cosine",
                    }
                ]
            },
        )
        try:
            self._collection.create_search_index(model)
        except OperationFailure as exc:
            if exc.code == _INDEX_ALREADY_EXISTS or "already exists" in str(exc).lower():
                return False
            if exc.code == _UNAUTHORIZED or "not authorized" in str(exc).lower():
                raise IndexPermissionError(
                    f"Not authorized to create search index '{index_name}' on "
                    f"'{self.collection_name}': {exc}"
                ) from exc
            raise VectorStoreError(f"MongoDB createSearchIndex failed: {exc}") from exc
        except PyMongoError as exc:
            raise VectorStoreError(f"MongoDB createSearchIndex failed: {exc}") from exc
        return True

    # -- chunks -----------------------------------------------------------------

    def find_one_with_field(self, field_path: str) -> dict[str, Any] | None:
        with _store_errors("find"):
            return self._collection.find_one({field_path: {"$exists": True}})

    def source_exists(self, source: str) -> bool:
        with _store_errors("find"):
            return self._collection.find_one({"metadata.source": source}, projection={"_id": 1}) is not None

    def insert_chunks(self, records: list[dict[str, Any]]) -> int:
        if not records:
            return 0
        with _store_errors("insertMany"):
            result = self._collection.insert_many(records, ordered=True)
        return len(result.inserted_ids)

    def vector_search(
        self,
        *,
        index_name: str,
        field_path: str,
        query_vector: list[float],
        k: int,
        num_candidates: int,
    ) -> list[dict[str, Any]]:
        pipeline = [
            {
                "$vectorSearch": {
                    "index": index_name,
                    "path": field_path,
                    "queryVector": query_vector,
                    "numCandidates": num_candidates,
                    "limit": k,
                }
            },
            {"$project": {"text": 1, "metadata": 1, "score": {"$meta": "vectorSearchScore"}}},
        ]
        with _store_errors("$vectorSearch"):
            docs = list(self._collection.aggregate(pipeline))
        return [
            {
                "id": str(doc["_id"]),
                "text": doc.get("text", ""),
                "score": float(doc.get("score", 0.0)),
                "metadata": doc.get("metadata") or {},
            }
            for doc in docs
        ]

    def count_chunks(self) -> int:
        with _store_errors("countDocuments"):
            return self._collection.count_documents({})

    def distinct_sources(self) -> list[str]:
        with _store_errors("distinct"):
            return sorted(s for s in self._collection.distinct("metadata.source") if s is not None)

    def count_by_file_type(self) -> dict[str | None, int]:
        pipeline = [{"$group": {"_id": "$metadata.fileType", "count": {"$sum": 1}}}]
        with _store_errors("aggregate"):
            return {row["_id"]: row["count"] for row in self._collection.aggregate(pipeline)}

    # -- schema registry --------------------------------------------------------

    def load_schema(self) -> dict[str, Any] | None:
        with _store_errors("find"):
            return self._schemas.find_one({"collection": self.collection_name}, projection={"_id": 0})

    def save_schema(self, record: dict[str, Any]) -> None:
        with _store_errors("replaceOne"):
            self._schemas.replace_one(
                {"collection": self.collection_name},
                {**record, "collection": self.collection_name},
                upsert=True,
            )

    def delete_schema(self) -> None:
        with _store_errors("deleteOne"):
            self._schemas.delete_one({"collection": self.collection_name})

    # -- source registry --------------------------------------------------------

    def _ensure_source_index(self) -> None:
        if self._sources_indexed:
            return
        with _store_errors("createIndex"):
            self._sources.create_index(
                [("collection", ASCENDING), ("source", ASCENDING)],
                unique=True,
                name="collection_source_unique",
            )
        self._sources_indexed = True

    def claim_source(self, source: str, file_type: str) -> bool:
        self._ensure_source_index()
        claim = {
            "collection": self.collection_name,
            "source": source,
            "file_type": file_type,
            "status": "pending",
            "claimed_at": datetime.now(timezone.utc),
        }
        with _store_errors("insertOne"):
            try:
                self._sources.insert_one(claim)
            except DuplicateKeyError:
                return False
        return True

    def mark_source_ingested(self, source: str, total_chunks: int) -> None:
        with _store_errors("updateOne"):
            self._sources.update_one(
                {"collection": self.collection_name, "source": source},
                {
                    "$set": {
                        "status": "ingested",
                        "total_chunks": total_chunks,
                        "ingested_at": datetime.now(timezone.utc),
                    }
                },
            )

    def release_source(self, source: str) -> None:
        with _store_errors("deleteOne"):
            self._sources.delete_one({"collection": self.collection_name, "source": source})

    def delete_source(self, source: str) -> None:
        with _store_errors("deleteMany"):
            self._collection.delete_many({"metadata.source": source})
        self.release_source(source)

    def clear_sources(self) -> None:
        with _store_errors("deleteMany"):
            self._sources.delete_many({"collection": self.collection_name})

    # -- misc -------------------------------------------------------------------

    def health_check(self) -> bool:
        try:
            self._client.admin.command("ping")
            return True
        except PyMongoError:
            logger.warning("MongoDB health-check failed", exc_info=True)
            return False

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
