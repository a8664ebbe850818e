"""Document loaders — turn uploaded file bytes into text units.

Each format yields LangChain ``Document`` units: one per PDF page, one per
spreadsheet sheet, and one for the whole file otherwise (text, CSV, Word,
and the concatenated text of a slide deck).  Unit metadata always carries
``source`` and ``fileType`` plus whichever locator (``page`` / ``sheet`` /
``slide``) is meaningful for the format.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from io import BytesIO
from pathlib import PurePath

from langchain_core.documents import Document

from atlas_rag.errors import ExtractionFailure, UnsupportedFormatError

logger = logging.getLogger(__name__)

FILE_TYPES: dict[str, str] = {
    ".pdf": "PDF",
    ".txt": "TXT",
    ".csv": "CSV",
    ".doc": "DOC",
    ".docx": "DOCX",
    ".xls": "XLS",
    ".xlsx": "XLSX",
    ".pptx": "PPTX",
}


def file_type_for(filename: str) -> str:
    """Return the normalised type tag for *filename* (``"PDF"``, ``"XLSX"``, …).

    Raises
    ------
    UnsupportedFormatError
        When the lowercase extension is not one of :data:`FILE_TYPES`.
    """
    extension = PurePath(filename).suffix.lower()
    try:
        return FILE_TYPES[extension]
    except KeyError:
        raise UnsupportedFormatError(filename, extension) from None


def extract(data: bytes, filename: str) -> list[Document]:
    """Extract text units from *data*.

    An extractor failure on a supported format does not propagate: the file
    is represented by a single placeholder unit naming the failure, flagged
    with ``extraction_error`` in its metadata.

    Raises
    ------
    UnsupportedFormatError
        When the extension of *filename* is not supported.
    """
    file_type = file_type_for(filename)
    base = {"source": filename, "fileType": file_type}
    try:
        units = _EXTRACTORS[file_type](data)
    except Exception as exc:  # noqa: BLE001 - third-party parsers raise anything
        failure = ExtractionFailure(filename, exc)
        logger.warning("Extraction degraded for %s: %s", filename, failure.message)
        return [
            Document(
                page_content=f"Content from {filename} could not be extracted ({failure.message})",
                metadata={**base, "extraction_error": failure.message},
            )
        ]
    return [Document(page_content=text, metadata={**base, **locator}) for text, locator in units]


# ── Per-format extractors ─────────────────────────────────────────────
#
# Each returns a list of ``(text, locator)`` pairs.

Unit = tuple[str, dict]


def _decode_text(data: bytes) -> list[Unit]:
    return [(data.decode("utf-8-sig", errors="replace"), {})]


def _extract_pdf(data: bytes) -> list[Unit]:
    from pypdf import PdfReader

    reader = PdfReader(BytesIO(data))
    return [
        ((page.extract_text() or "").strip(), {"page": number})
        for number, page in enumerate(reader.pages, 1)
    ]


def _extract_word(data: bytes) -> list[Unit]:
    from docx import Document as WordDocument

    doc = WordDocument(BytesIO(data))
    parts = [para.text.strip() for para in doc.paragraphs if para.text.strip()]
    for table in doc.tables:
        rows = [" | ".join(cell.text.strip() for cell in row.cells) for row in table.rows]
        if rows:
            parts.append("\n".join(rows))
    return [("\n\n".join(parts), {})]


def _extract_spreadsheet(data: bytes) -> list[Unit]:
    import pandas as pd

    sheets = pd.read_excel(BytesIO(data), sheet_name=None, dtype=str)
    units: list[Unit] = []
    for sheet_name, frame in sheets.items():
        frame = frame.fillna("")
        lines = [" | ".join(str(column) for column in frame.columns)]
        for row in frame.itertuples(index=False):
            cells = [str(value).strip() for value in row]
            if any(cells):
                lines.append(" | ".join(cells))
        units.append(("\n".join(lines), {"sheet": str(sheet_name)}))
    return units


def _extract_presentation(data: bytes) -> list[Unit]:
    from pptx import Presentation

    prs = Presentation(BytesIO(data))
    slides: list[str] = []
    for number, slide in enumerate(prs.slides, 1):
        slide_text: list[str] = []
        for shape in slide.shapes:
            if shape.has_text_frame and shape.text_frame.text.strip():
                slide_text.append(shape.text_frame.text.strip())
            if shape.has_table:
                rows = [" | ".join(cell.text.strip() for cell in row.cells) for row in shape.table.rows]
                slide_text.append("\n".join(rows))
        if slide_text:
            slides.append(f"[Slide {number}]\n" + "\n".join(slide_text))
    return [("\n\n".join(slides), {})]


_EXTRACTORS: dict[str, Callable[[bytes], list[Unit]]] = {
    "PDF": _extract_pdf,
    "TXT": _decode_text,
    "CSV": _decode_text,
    "DOC": _extract_word,
    "DOCX": _extract_word,
    "XLS": _extract_spreadsheet,
    "XLSX": _extract_spreadsheet,
    "PPTX": _extract_presentation,
}
