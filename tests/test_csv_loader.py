import codecs

import pytest

from kessan.csv_loader import detect_encoding, extract_csv_table
from kessan.errors import ExtractionError
from kessan.models import DocumentFormat
from tests.helpers.statement_builder import csv_bytes


ROWS = [["勘定科目", "当期"], ["現金及び預金", "1,000"], ["売上高", "△200"]]


def _texts(table):
    return [[cell.text for cell in row] for row in table.rows]


def test_detect_encoding_variants():
    assert detect_encoding("売上高,1\n".encode("utf-8")) == "utf-8"
    assert detect_encoding(codecs.BOM_UTF8 + "売上高,1\n".encode("utf-8")) == "utf-8-sig"
    assert detect_encoding(csv_bytes(ROWS * 5, encoding="cp932")) == "cp932"


def test_shift_jis_csv_round_trip():
    table = extract_csv_table(csv_bytes(ROWS, encoding="cp932"))
    assert table.source_format is DocumentFormat.CSV
    assert _texts(table) == ROWS


def test_quoted_cells_keep_delimiters():
    table = extract_csv_table(csv_bytes(ROWS))
    assert _texts(table)[1] == ["現金及び預金", "1,000"]


def test_custom_delimiter():
    data = csv_bytes(ROWS, delimiter="\t")
    assert _texts(extract_csv_table(data, delimiter="\t")) == ROWS


def test_blank_csv_raises():
    with pytest.raises(ExtractionError):
        extract_csv_table(b" , \r\n,,\r\n")
