"""Ingestion coordinator — extract, chunk, embed and persist a batch of files.

Files are processed one after another: file N+1 starts only after file N's
chunks are persisted.  Ingestion is append-only; a file whose source name
is already claimed in the collection is reported as ``skipped`` and
nothing is overwritten.  One file failing never aborts the batch.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from langchain_core.documents import Document

from atlas_rag.errors import IndexPermissionError, RagError, VectorStoreError
from atlas_rag.ingestion.chunker import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE, chunk_documents
from atlas_rag.ingestion.embedder import EmbeddingClient
from atlas_rag.ingestion.loader import extract, file_type_for
from atlas_rag.ingestion.models import (
    BatchTiming,
    FileStat,
    IngestionReport,
    IngestionTotals,
    SourceDocument,
    SourceFile,
    format_file_size,
)
from atlas_rag.retrieval.base import VectorStoreBase
from atlas_rag.retrieval.index_manager import IndexManager
from atlas_rag.retrieval.models import CollectionSchema
from atlas_rag.retrieval.schema import SchemaResolver

logger = logging.getLogger(__name__)

_LOCATOR_KEYS = ("page", "sheet", "slide")


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def build_record(chunk: Document, vector: list[float], field_path: str) -> dict[str, Any]:
    """Shape one chunk as the stored ``{text, <field_path>, metadata}`` record."""
    meta = chunk.metadata
    metadata: dict[str, Any] = {"source": meta["source"], "fileType": meta["fileType"]}
    for key in _LOCATOR_KEYS:
        if meta.get(key) is not None:
            metadata[key] = meta[key]
    metadata["chunk_index"] = meta["chunk_index"]
    metadata["total_chunks"] = meta["total_chunks"]
    return {"text": chunk.page_content, field_path: vector, "metadata": metadata}


class IngestionCoordinator:
    """Run the ingestion pipeline for one collection.

    Parameters
    ----------
    store:
        Backend holding the chunk collection.
    embedder:
        Client for the configured embedding provider.
    index_manager:
        Ensures the collection, schema record and index exist before the
        first file is written.
    chunk_size / chunk_overlap:
        Chunking policy, in characters.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embedder: EmbeddingClient,
        *,
        index_manager: IndexManager | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._resolver = SchemaResolver(store)
        self._index_manager = index_manager or IndexManager(store, resolver=self._resolver)
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap

    def ingest(self, files: list[SourceFile]) -> IngestionReport:
        """Ingest *files* sequentially and report per-file outcomes.

        Raises
        ------
        DimensionMismatchError
            The collection already holds vectors of another length; no file
            is touched.
        """
        started = time.perf_counter()
        schema = self._prepare_schema()
        existing_chunks = self._store.count_chunks()

        documents: list[SourceDocument] = []
        stats: list[FileStat] = []
        for source_file in files:
            stat, document = self._ingest_file(source_file, schema)
            stats.append(stat)
            if document is not None:
                documents.append(document)

        new_chunks = sum(doc.total_chunks for doc in documents)
        overall_ms = _elapsed_ms(started)
        report = IngestionReport(
            ingested_documents=documents,
            file_stats=stats,
            totals=IngestionTotals(
                new_documents=len(documents),
                new_chunks=new_chunks,
                existing_chunks=existing_chunks,
                total_chunks=self._store.count_chunks(),
            ),
            timing=BatchTiming(
                overall_ms=overall_ms,
                average_ms_per_document=overall_ms // len(documents) if documents else 0,
                average_ms_per_chunk=overall_ms // new_chunks if new_chunks else 0,
            ),
            field_path=schema.field_path,
        )
        logger.info(
            "Batch done: %d new documents, %d new chunks, %d total chunks in %dms",
            report.totals.new_documents,
            report.totals.new_chunks,
            report.totals.total_chunks,
            overall_ms,
        )
        return report

    # -- internals ------------------------------------------------------------

    def _prepare_schema(self) -> CollectionSchema:
        try:
            return self._index_manager.ensure_index(
                dimension=self._embedder.dimension, provider=self._embedder.provider
            )
        except IndexPermissionError as exc:
            # An index created out-of-band still serves queries.
            logger.warning("Continuing without creating the vector index: %s", exc.message)
            schema = self._resolver.resolve()
            if schema is None:
                raise
            return schema

    def _ingest_file(
        self, source_file: SourceFile, schema: CollectionSchema
    ) -> tuple[FileStat, SourceDocument | None]:
        name = source_file.name
        started = time.perf_counter()
        stat = FileStat(file_name=name, file_size=format_file_size(len(source_file.content)), status="failed")

        try:
            stat.file_type = file_type_for(name)
        except RagError as exc:
            logger.error("Rejected %s: %s", name, exc.message)
            stat.reason = exc.message
            stat.total_ms = _elapsed_ms(started)
            return stat, None

        claimed = self._store.claim_source(name, stat.file_type)
        if not claimed or self._store.source_exists(name):
            if claimed:
                # Chunks written before the source registry existed.
                self._store.release_source(name)
            logger.info("Skipping %s: already exists in collection '%s'", name, self._store.collection_name)
            stat.status = "skipped"
            stat.reason = "already exists in collection"
            stat.total_ms = _elapsed_ms(started)
            return stat, None

        logger.info("Processing %s...", name)
        inserting = False
        try:
            step = time.perf_counter()
            units = extract(source_file.content, name)
            stat.loading_ms = _elapsed_ms(step)
            stat.degraded = any("extraction_error" in unit.metadata for unit in units)

            step = time.perf_counter()
            chunks = chunk_documents(units, self._chunk_size, self._chunk_overlap)
            stat.chunking_ms = _elapsed_ms(step)
            if not chunks:
                self._store.release_source(name)
                stat.status = "empty"
                stat.reason = "no text could be extracted"
                stat.total_ms = _elapsed_ms(started)
                return stat, None

            step = time.perf_counter()
            vectors = self._embedder.embed_documents([chunk.page_content for chunk in chunks])
            stat.embedding_ms = _elapsed_ms(step)

            step = time.perf_counter()
            records = [build_record(chunk, vector, schema.field_path) for chunk, vector in zip(chunks, vectors)]
            inserting = True
            self._store.insert_chunks(records)
            self._store.mark_source_ingested(name, len(records))
            stat.insertion_ms = _elapsed_ms(step)
        except RagError as exc:
            logger.error("Failed to ingest %s: %s", name, exc.message)
            self._abandon(name, partial=inserting and isinstance(exc, VectorStoreError))
            stat.reason = exc.message
            stat.total_ms = _elapsed_ms(started)
            return stat, None

        stat.status = "processed"
        stat.chunks_created = len(chunks)
        stat.total_ms = _elapsed_ms(started)
        stat.average_ms_per_chunk = stat.total_ms // len(chunks)
        logger.info(
            "Processed %s: %d chunks (load %dms, chunk %dms, embed %dms, insert %dms)",
            name,
            len(chunks),
            stat.loading_ms,
            stat.chunking_ms,
            stat.embedding_ms,
            stat.insertion_ms,
        )
        return stat, SourceDocument(source=name, file_type=stat.file_type, total_chunks=len(chunks))

    def _abandon(self, name: str, *, partial: bool) -> None:
        """Drop the claim on a failed file, and its partially written chunks."""
        try:
            if partial:
                self._store.delete_source(name)
            else:
                self._store.release_source(name)
        except VectorStoreError as exc:
            logger.error("Could not release claim on %s: %s", name, exc.message)
