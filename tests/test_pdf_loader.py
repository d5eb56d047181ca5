import io

import pytest
from pypdf import PdfWriter

from kessan.errors import ExtractionError
from kessan.models import DocumentFormat
from kessan.pdf_loader import extract_pdf_table, split_layout_line


class FakePage:
    def __init__(self, text):
        self.text = text

    def extract_text(self, extraction_mode="plain"):
        assert extraction_mode == "layout"
        return self.text


class FakeReader:
    def __init__(self, pages):
        self.pages = pages


def test_split_layout_line_separates_columns():
    assert split_layout_line("  現金及び預金      1,000      900  ") == ["現金及び預金", "1,000", "900"]
    assert split_layout_line("売上総利益 1,234 △56") == ["売上総利益", "1,234", "△56"]
    assert split_layout_line("貸借対照表") == ["貸借対照表"]
    assert split_layout_line("   ") == []


def test_split_layout_line_keeps_multi_column_layout():
    line = "流動資産合計   90,000      流動負債合計   60,000"
    assert split_layout_line(line) == ["流動資産合計", "90,000", "流動負債合計", "60,000"]


def test_extract_pdf_table_builds_rows_per_page(monkeypatch):
    pages = [
        FakePage("損益計算書\n\n売上高        100,000\n"),
        FakePage("営業利益      10,000"),
    ]
    monkeypatch.setattr("kessan.pdf_loader.PdfReader", lambda stream: FakeReader(pages))
    table = extract_pdf_table(b"%PDF-1.4")
    assert table.source_format is DocumentFormat.PDF
    texts = [[cell.text for cell in row] for row in table.rows]
    assert texts == [["損益計算書"], ["売上高", "100,000"], ["営業利益", "10,000"]]
    assert table.rows[2][0].sheet == "page 2"


def test_pdf_without_text_layer_raises():
    writer = PdfWriter()
    writer.add_blank_page(width=595, height=842)
    buffer = io.BytesIO()
    writer.write(buffer)
    with pytest.raises(ExtractionError):
        extract_pdf_table(buffer.getvalue())


def test_corrupt_pdf_raises_extraction_error():
    with pytest.raises(ExtractionError):
        extract_pdf_table(b"%PDF-1.4\nthis is not a pdf body")
