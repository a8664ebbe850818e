"""Unit tests for the document loaders."""

from io import BytesIO

import pytest

from atlas_rag.errors import UnsupportedFormatError
from atlas_rag.ingestion.loader import extract, file_type_for


@pytest.mark.parametrize(
    ("filename", "expected"),
    [("report.PDF", "PDF"), ("notes.txt", "TXT"), ("legacy.doc", "DOC"), ("deck.pptx", "PPTX")],
)
def test_file_type_is_derived_from_lowercase_extension(filename: str, expected: str) -> None:
    assert file_type_for(filename) == expected


@pytest.mark.parametrize("filename", ["archive.zip", "README", "slides.ppt"])
def test_unsupported_extension_is_rejected(filename: str) -> None:
    with pytest.raises(UnsupportedFormatError) as exc_info:
        extract(b"data", filename)
    assert exc_info.value.filename == filename


def test_text_is_decoded_as_utf8() -> None:
    units = extract("café menu\n".encode(), "menu.txt")
    assert len(units) == 1
    assert units[0].page_content == "café menu\n"
    assert units[0].metadata == {"source": "menu.txt", "fileType": "TXT"}


def test_csv_is_read_as_plain_text() -> None:
    units = extract(b"name,price\nTea,3\n", "prices.csv")
    assert units[0].page_content.startswith("name,price")
    assert units[0].metadata["fileType"] == "CSV"


def test_corrupted_presentation_degrades_to_placeholder() -> None:
    units = extract(b"this is not a zip archive", "broken.pptx")
    assert len(units) == 1
    unit = units[0]
    assert unit.page_content.startswith("Content from broken.pptx could not be extracted (")
    assert "extraction_error" in unit.metadata
    assert unit.metadata["fileType"] == "PPTX"


def test_word_document_paragraphs_and_tables() -> None:
    docx = pytest.importorskip("docx")
    document = docx.Document()
    document.add_paragraph("Quarterly summary")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Revenue"
    table.rows[0].cells[1].text = "42"
    buffer = BytesIO()
    document.save(buffer)

    units = extract(buffer.getvalue(), "summary.docx")
    assert "Quarterly summary" in units[0].page_content
    assert "Revenue | 42" in units[0].page_content


def test_spreadsheet_yields_one_unit_per_sheet() -> None:
    pd = pytest.importorskip("pandas")
    pytest.importorskip("openpyxl")
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        pd.DataFrame({"item": ["tea"], "qty": [3]}).to_excel(writer, sheet_name="Stock", index=False)
        pd.DataFrame({"item": ["cake"], "qty": [1]}).to_excel(writer, sheet_name="Orders", index=False)

    units = extract(buffer.getvalue(), "inventory.xlsx")
    assert [u.metadata["sheet"] for u in units] == ["Stock", "Orders"]
    assert units[0].page_content.splitlines() == ["item | qty", "tea | 3"]


def test_presentation_slides_are_marked() -> None:
    pptx = pytest.importorskip("pptx")
    prs = pptx.Presentation()
    for title in ("Intro", "Roadmap"):
        slide = prs.slides.add_slide(prs.slide_layouts[5])
        slide.shapes.title.text = title
    buffer = BytesIO()
    prs.save(buffer)

    units = extract(buffer.getvalue(), "deck.pptx")
    assert len(units) == 1
    assert units[0].page_content == "[Slide 1]\nIntro\n\n[Slide 2]\nRoadmap"
    assert "page" not in units[0].metadata


def _pdf(pages: list[str]) -> bytes:
    """Write a minimal PDF with one Helvetica text line per page."""
    objects = [
        "<< /Type /Catalog /Pages 2 0 R >>",
        "",
        "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    kids = []
    for text in pages:
        stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET"
        objects.append(f"<< /Length {len(stream)} >>\nstream\n{stream}\nendstream")
        contents = len(objects)
        objects.append(
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 3 0 R >> >> /Contents {contents} 0 R >>"
        )
        kids.append(f"{len(objects)} 0 R")
    objects[1] = f"<< /Type /Pages /Kids [{' '.join(kids)}] /Count {len(kids)} >>"

    out = b"%PDF-1.4\n"
    offsets = []
    for number, body in enumerate(objects, 1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n{body}\nendobj\n".encode()
    xref = len(out)
    out += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode()
    out += "".join(f"{offset:010d} 00000 n \n" for offset in offsets).encode()
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref}\n%%EOF\n".encode()
    return out


def test_pdf_yields_one_unit_per_page() -> None:
    units = extract(_pdf(["Refund policy", "Shipping terms"]), "policy.pdf")

    assert [u.metadata["page"] for u in units] == [1, 2]
    assert "Refund policy" in units[0].page_content
    assert "Shipping terms" in units[1].page_content
    assert all(u.metadata["fileType"] == "PDF" for u in units)
    assert all("extraction_error" not in u.metadata for u in units)


def test_corrupted_pdf_degrades_to_placeholder() -> None:
    units = extract(b"%PDF-1.4 truncated", "broken.pdf")
    assert len(units) == 1
    assert "extraction_error" in units[0].metadata
