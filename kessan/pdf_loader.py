import io
import re
from typing import List

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from .errors import ExtractionError
from .models import DocumentFormat, RawCell, RawTable


_COLUMN_GAP_RE = re.compile(r"\t+| {2,}|　+")
# An amount token: optional sign or accounting marks, digits with separators.
_AMOUNT_TOKEN_RE = re.compile(
    r"^[\(（]?[△▲\-−ー－]?[¥￥]?[\d０-９][\d０-９,，.．]*(?:百万円|千円|億円|円)?[\)）]?$"
)
# pypdf surfaces damaged objects as plain built-in errors as well.
_READ_ERRORS = (
    PyPdfError,
    ValueError,
    KeyError,
    IndexError,
    TypeError,
    AttributeError,
    OSError,
)


def extract_pdf_table(data: bytes) -> RawTable:
    """Rebuild label/amount rows from the text layer of a PDF.

    Layout mode keeps column gaps, so each run of two or more spaces is
    treated as a column boundary.
    """
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = list(reader.pages)
    except _READ_ERRORS as exc:
        raise ExtractionError(f"unreadable PDF: {exc}") from exc

    rows = []
    for page_index, page in enumerate(pages, start=1):
        try:
            text = page.extract_text(extraction_mode="layout") or ""
        except _READ_ERRORS as exc:
            raise ExtractionError(f"PDF page {page_index} could not be read: {exc}") from exc
        text = text.replace("\u0000", " ")
        sheet = f"page {page_index}"
        line_number = 0
        for line in text.splitlines():
            cells = split_layout_line(line)
            if not cells:
                continue
            line_number += 1
            rows.append(
                tuple(
                    RawCell(text=cell, sheet=sheet, row=line_number, column=column)
                    for column, cell in enumerate(cells, start=1)
                )
            )

    table = RawTable(source_format=DocumentFormat.PDF, rows=tuple(rows))
    if table.is_empty:
        raise ExtractionError("PDF has no extractable text layer (scanned image?)")
    return table


def split_layout_line(line: str) -> List[str]:
    """Split one layout line into cells.

    ``"現金及び預金 1,000 900"`` becomes three cells: trailing amount tokens are
    split off even when only a single space separates them.
    """
    cells: List[str] = []
    for chunk in _COLUMN_GAP_RE.split(line.strip()):
        chunk = chunk.strip()
        if not chunk:
            continue
        tokens = chunk.split(" ")
        amounts: List[str] = []
        while len(tokens) > 1 and _AMOUNT_TOKEN_RE.match(tokens[-1]):
            amounts.insert(0, tokens.pop())
        cells.append(" ".join(tokens))
        cells.extend(amounts)
    return cells
