"""Unit tests for the MongoDB Atlas store, against a mocked driver."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from pymongo.errors import DuplicateKeyError, OperationFailure, ServerSelectionTimeoutError

from atlas_rag.config import StoreConfig
from atlas_rag.errors import IndexPermissionError, VectorStoreError
from atlas_rag.retrieval.mongo_store import MongoVectorStore


@pytest.fixture()
def collections() -> dict[str, MagicMock]:
    return {name: MagicMock(name=name) for name in ("docs", "rag_collection_schemas", "rag_sources")}


@pytest.fixture()
def mongo(collections) -> MongoVectorStore:
    database = MagicMock()
    database.__getitem__.side_effect = collections.__getitem__
    client = MagicMock()
    client.__getitem__.return_value = database
    config = StoreConfig(connection_uri="mongodb://localhost", database_name="rag_demo", collection_name="docs")
    return MongoVectorStore(config, client=client)


def test_vector_search_pipeline(mongo, collections) -> None:
    collections["docs"].aggregate.return_value = [
        {"_id": "abc", "text": "hello", "score": 0.87, "metadata": {"source": "a.txt"}}
    ]

    hits = mongo.vector_search(
        index_name="rag_demo_index", field_path="embedding", query_vector=[0.1, 0.2], k=3, num_candidates=100
    )

    pipeline = collections["docs"].aggregate.call_args.args[0]
    assert pipeline[0] == {
        "$vectorSearch": {
            "index": "rag_demo_index",
            "path": "embedding",
            "queryVector": [0.1, 0.2],
            "numCandidates": 100,
            "limit": 3,
        }
    }
    assert pipeline[1]["$project"]["score"] == {"$meta": "vectorSearchScore"}
    assert hits == [{"id": "abc", "text": "hello", "score": 0.87, "metadata": {"source": "a.txt"}}]


def test_create_vector_index_definition(mongo, collections) -> None:
    assert mongo.create_vector_index("rag_demo_index", "embeddingVector", 1024) is True
    model = collections["docs"].create_search_index.call_args.args[0]
    assert model.document["name"] == "rag_demo_index"
    assert model.document["type"] == "vectorSearch"
    assert model.document["definition"]["fields"] == [
        {"type": "vector", "path": "embeddingVector", "numDimensions": 1024, "similarity": "cosine"}
    ]


def test_existing_index_is_not_an_error(mongo, collections) -> None:
    collections["docs"].create_search_index.side_effect = OperationFailure("Index already exists", code=68)
    assert mongo.create_vector_index("rag_demo_index", "embedding", 1024) is False


def test_unauthorized_index_creation(mongo, collections) -> None:
    collections["docs"].create_search_index.side_effect = OperationFailure("not authorized", code=13)
    with pytest.raises(IndexPermissionError):
        mongo.create_vector_index("rag_demo_index", "embedding", 1024)


def test_claim_source_uses_unique_registry(mongo, collections) -> None:
    sources = collections["rag_sources"]
    assert mongo.claim_source("a.txt", "TXT") is True
    sources.create_index.assert_called_once()
    assert sources.create_index.call_args.kwargs["unique"] is True

    sources.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")
    assert mongo.claim_source("a.txt", "TXT") is False
    sources.create_index.assert_called_once()


def test_driver_errors_become_store_errors(mongo, collections) -> None:
    collections["docs"].count_documents.side_effect = ServerSelectionTimeoutError("no servers")
    with pytest.raises(VectorStoreError, match="countDocuments failed"):
        mongo.count_chunks()


def test_count_by_file_type_keeps_missing_types(mongo, collections) -> None:
    collections["docs"].aggregate.return_value = [{"_id": "PDF", "count": 4}, {"_id": None, "count": 1}]
    assert mongo.count_by_file_type() == {"PDF": 4, None: 1}


def test_schema_registry_is_upserted_per_collection(mongo, collections) -> None:
    mongo.save_schema({"field_path": "embedding", "dimension": 1024})
    filter_, replacement = collections["rag_collection_schemas"].replace_one.call_args.args
    assert filter_ == {"collection": "docs"}
    assert replacement["collection"] == "docs"
    assert collections["rag_collection_schemas"].replace_one.call_args.kwargs == {"upsert": True}


def test_shared_client_is_not_closed(mongo) -> None:
    mongo.close()
    mongo._client.close.assert_not_called()


@pytest.mark.parametrize("uri", ["", "postgres://db", "localhost:27017"])
def test_store_config_rejects_bad_connection_strings(uri: str) -> None:
    from atlas_rag.errors import ConfigurationError

    with pytest.raises(ConfigurationError):
        StoreConfig(connection_uri=uri, database_name="d", collection_name="c").ensure_complete()
