"""Data models flowing through an ingestion batch."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

FileStatus = Literal["processed", "skipped", "failed", "empty"]

# Serialized with camelCase keys for the web client.
_WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def format_file_size(size: int) -> str:
    """Human-readable size, e.g. ``"1.5 KB"``."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    exponent = min(int(math.log(size, 1024)), len(units) - 1)
    value = round(size / 1024**exponent, 2)
    return f"{value:g} {units[exponent]}"


class SourceFile(BaseModel):
    """One uploaded file: its original name and raw bytes."""

    name: str
    content: bytes
    content_type: str = ""


class SourceDocument(BaseModel):
    """A fully ingested file — the unit of deduplication."""

    model_config = _WIRE

    source: str
    file_type: str
    total_chunks: int
    ingested_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FileStat(BaseModel):
    """Outcome and timings (milliseconds) for one file of a batch."""

    model_config = _WIRE

    file_name: str
    file_type: str = "UNKNOWN"
    file_size: str = "0 Bytes"
    status: FileStatus
    reason: str | None = None
    degraded: bool = False
    chunks_created: int = 0
    loading_ms: int = 0
    chunking_ms: int = 0
    embedding_ms: int = 0
    insertion_ms: int = 0
    total_ms: int = 0
    average_ms_per_chunk: int = 0


class IngestionTotals(BaseModel):
    model_config = _WIRE

    new_documents: int = 0
    new_chunks: int = 0
    existing_chunks: int = 0
    total_chunks: int = 0


class BatchTiming(BaseModel):
    model_config = _WIRE

    overall_ms: int = 0
    average_ms_per_document: int = 0
    average_ms_per_chunk: int = 0


class IngestionReport(BaseModel):
    """Partial-success report for one ingestion batch."""

    model_config = _WIRE

    ingested_documents: list[SourceDocument] = Field(default_factory=list)
    file_stats: list[FileStat] = Field(default_factory=list, alias="perFileStats")
    totals: IngestionTotals = Field(default_factory=IngestionTotals)
    timing: BatchTiming = Field(default_factory=BatchTiming)
    field_path: str
