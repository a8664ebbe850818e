"""Domain models for collection schemas, retrieval results and citations."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

NO_RELEVANT_DOCUMENTS = "No relevant documents found."

CONTEXT_SEPARATOR = "\n\n---\n\n"


class CollectionSchema(BaseModel):
    """Which field holds vectors in a collection and how long they are.

    Written once when the collection's index is created (or on its first
    ingestion) and read thereafter.  Re-derived, never mutated, after a
    destructive reset.

    Attributes
    ----------
    collection:
        Name of the chunk collection the record describes.
    field_path:
        Name of the document attribute holding the embedding vector.
    dimension:
        Vector length; ``None`` only for legacy collections whose vectors
        could not be measured.
    provider:
        Embedding provider that produced the stored vectors, when known.
    created_at:
        UTC timestamp of when the record was first written.
    """

    collection: str
    field_path: str
    dimension: int | None = None
    provider: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Citation(BaseModel):
    """Provenance record linking a retrieved chunk back to its source file.

    Attributes
    ----------
    document_id:
        The store ID of the chunk (``None`` when unknown).
    source:
        Original filename.
    file_type:
        Normalised extension tag (``"PDF"``, ``"XLSX"``, …).
    chunk_index:
        Ordinal position of the chunk within the source file.
    page / sheet / slide:
        Sub-unit locator, whichever the format provides.
    score:
        Similarity score returned by the vector store.
    metadata:
        The full stored metadata dict.
    retrieved_at:
        UTC timestamp of when the retrieval happened.
    """

    document_id: str | None = None
    source: str = "Unknown"
    file_type: str = "UNKNOWN"
    chunk_index: int | None = None
    page: int | None = None
    sheet: str | None = None
    slide: int | None = None
    score: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    retrieved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_hit(cls, hit: dict[str, Any]) -> Citation:
        meta = hit.get("metadata") or {}
        return cls(
            document_id=hit.get("id"),
            source=meta.get("source") or "Unknown",
            file_type=meta.get("fileType") or "UNKNOWN",
            chunk_index=meta.get("chunk_index"),
            page=meta.get("page"),
            sheet=meta.get("sheet"),
            slide=meta.get("slide"),
            score=hit.get("score"),
            metadata=meta,
        )

    def locator(self) -> str:
        """``Page n`` / ``Sheet name`` / ``Slide n``; ``Page 1`` for whole-file units."""
        if self.page is not None:
            return f"Page {self.page}"
        if self.sheet is not None:
            return f"Sheet {self.sheet}"
        if self.slide is not None:
            return f"Slide {self.slide}"
        return "Page 1"

    def label(self, position: int) -> str:
        """Return the ``[Source i: name (TYPE), Locator]`` tag for rank *position* (1-based)."""
        return f"[Source {position}: {self.source} ({self.file_type}), {self.locator()}]"


class RetrievedChunk(BaseModel):
    """A single retrieved passage together with its citation."""

    content: str
    citation: Citation
    label: str

    def __str__(self) -> str:  # noqa: D105
        return f"{self.label} {self.content[:120]}…"


class RetrievalResult(BaseModel):
    """Ranked chunks for one question plus the assembled context string."""

    question: str
    field_path: str
    chunks: list[RetrievedChunk] = Field(default_factory=list)

    @property
    def sources(self) -> list[str]:
        return [chunk.label for chunk in self.chunks]

    @property
    def context_text(self) -> str:
        if not self.chunks:
            return NO_RELEVANT_DOCUMENTS
        return CONTEXT_SEPARATOR.join(f"{chunk.label}\n{chunk.content}" for chunk in self.chunks)
