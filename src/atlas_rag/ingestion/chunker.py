"""Text chunking strategies."""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_text_splitters import RecursiveCharacterTextSplitter

if TYPE_CHECKING:
    from langchain_core.documents import Document

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200

# Paragraph, line, sentence, word, then hard character cuts.
SEPARATORS = ["\n\n", "\n", ". ", " ", ""]


def chunk_documents(
    documents: list[Document],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[Document]:
    """Split the units of one file into overlapping chunks.

    Parameters
    ----------
    documents:
        Units produced by :func:`atlas_rag.ingestion.loader.extract` for a
        single file, in order.
    chunk_size:
        Maximum number of characters per chunk.
    chunk_overlap:
        Number of characters carried over between consecutive chunks of
        the same unit.

    Returns
    -------
    list[Document]
        Chunks keeping their unit's metadata, numbered across the whole
        file with ``chunk_index`` (0-based) and ``total_chunks``.  Empty
        units contribute no chunks.
    """
    if chunk_overlap >= chunk_size:
        raise ValueError(f"chunk_overlap ({chunk_overlap}) must be < chunk_size ({chunk_size})")

    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        length_function=len,
        separators=SEPARATORS,
    )
    chunks = splitter.split_documents(documents)

    total = len(chunks)
    for index, chunk in enumerate(chunks):
        chunk.metadata["chunk_index"] = index
        chunk.metadata["total_chunks"] = total
    return chunks
