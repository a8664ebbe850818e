"""Abstract base class for vector-store backends.

A backend owns one chunk collection plus two small bookkeeping registries:

* the **schema registry** — one record per collection naming the vector
  field path, its dimension and the provider that produced the vectors;
* the **source registry** — one record per ingested file, unique per
  ``(collection, source)``, used as the deduplication claim.

Adding a backend only requires subclassing :class:`VectorStoreBase`; the
rest of the pipeline is backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    collection_name:
        Logical name of the chunk collection.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- collection & index lifecycle -----------------------------------------

    @abstractmethod
    def collection_exists(self) -> bool: ...

    @abstractmethod
    def create_collection(self) -> None:
        """Create the chunk collection; no-op when it already exists."""
        ...

    @abstractmethod
    def drop_collection(self) -> None:
        """Drop the chunk collection; no-op when it does not exist."""
        ...

    @abstractmethod
    def create_vector_index(self, index_name: str, field_path: str, dimension: int) -> bool:
        """Create a cosine vector index over *field_path*.

        Returns ``False`` when an index named *index_name* already exists.

        Raises
        ------
        IndexPermissionError
            The backend refused the creation for lack of privilege.
        """
        ...

    # -- chunks -----------------------------------------------------------------

    @abstractmethod
    def find_one_with_field(self, field_path: str) -> dict[str, Any] | None:
        """Return any chunk record that has *field_path* set, or ``None``."""
        ...

    @abstractmethod
    def source_exists(self, source: str) -> bool:
        """``True`` when chunks with ``metadata.source == source`` are stored."""
        ...

    @abstractmethod
    def insert_chunks(self, records: list[dict[str, Any]]) -> int:
        """Bulk-insert chunk records, returning the number inserted."""
        ...

    @abstractmethod
    def vector_search(
        self,
        *,
        index_name: str,
        field_path: str,
        query_vector: list[float],
        k: int,
        num_candidates: int,
    ) -> list[dict[str, Any]]:
        """Return the top-*k* records nearest to *query_vector*.

        Each result dict **must** contain at least:

        * ``"id"`` – chunk identifier
        * ``"text"`` – the chunk text
        * ``"score"`` – similarity score (higher = more similar)
        * ``"metadata"`` – the stored metadata dict
        """
        ...

    @abstractmethod
    def count_chunks(self) -> int: ...

    @abstractmethod
    def distinct_sources(self) -> list[str]: ...

    @abstractmethod
    def count_by_file_type(self) -> dict[str | None, int]:
        """Chunk counts grouped by ``metadata.fileType``."""
        ...

    # -- schema registry --------------------------------------------------------

    @abstractmethod
    def load_schema(self) -> dict[str, Any] | None: ...

    @abstractmethod
    def save_schema(self, record: dict[str, Any]) -> None:
        """Insert or replace this collection's schema record."""
        ...

    @abstractmethod
    def delete_schema(self) -> None: ...

    # -- source registry --------------------------------------------------------

    @abstractmethod
    def claim_source(self, source: str, file_type: str) -> bool:
        """Atomically register *source*; ``False`` when it is already claimed."""
        ...

    @abstractmethod
    def mark_source_ingested(self, source: str, total_chunks: int) -> None: ...

    @abstractmethod
    def release_source(self, source: str) -> None:
        """Drop the claim on *source* so it can be submitted again."""
        ...

    @abstractmethod
    def delete_source(self, source: str) -> None:
        """Remove every chunk of *source* together with its claim."""
        ...

    @abstractmethod
    def clear_sources(self) -> None:
        """Drop every claim belonging to this collection."""
        ...

    # -- misc -------------------------------------------------------------------

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...

    def close(self) -> None:
        """Release connections.  Optional — no-op by default."""

    def __enter__(self) -> VectorStoreBase:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
