"""
Retrieval — vector store, schema resolution, index lifecycle and k-NN search.

The store is wrapped behind a clean interface so that the ingestion and
query layers never need to know which database backs retrieval.

Public surface
--------------
- :class:`SemanticRetriever` — question → ranked, citation-tagged chunks.
- :class:`SchemaResolver` — which field holds a collection's vectors.
- :class:`IndexManager` — ensure / reset the collection's vector index.
- :class:`VectorStoreBase` — abstract backend.
- :class:`MongoVectorStore` — MongoDB Atlas backend.
- :class:`CollectionSchema`, :class:`Citation`, :class:`RetrievalResult` — data models.
"""

from atlas_rag.retrieval.base import VectorStoreBase
from atlas_rag.retrieval.index_manager import IndexManager
from atlas_rag.retrieval.models import Citation, CollectionSchema, RetrievalResult, RetrievedChunk
from atlas_rag.retrieval.retriever import SemanticRetriever
from atlas_rag.retrieval.schema import SchemaResolver

__all__ = [
    "Citation",
    "CollectionSchema",
    "IndexManager",
    "MongoVectorStore",
    "RetrievalResult",
    "RetrievedChunk",
    "SchemaResolver",
    "SemanticRetriever",
    "VectorStoreBase",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import MongoVectorStore to avoid pulling in pymongo at import time."""
    if name == "MongoVectorStore":
        from atlas_rag.retrieval.mongo_store import MongoVectorStore

        return MongoVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
