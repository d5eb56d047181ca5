import io
import zipfile
from datetime import date, datetime
from typing import Any, List

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .errors import ExtractionError
from .models import DocumentFormat, RawCell, RawTable


# XML parse errors from ElementTree and lxml both derive from SyntaxError.
_READ_ERRORS = (
    InvalidFileException,
    zipfile.BadZipFile,
    SyntaxError,
    KeyError,
    IndexError,
    TypeError,
    ValueError,
    AttributeError,
    OSError,
)


def extract_spreadsheet_table(data: bytes) -> RawTable:
    """Read every worksheet of an xlsx workbook into raw rows.

    ``data_only`` makes formula cells yield their cached value; a formula
    without one comes back empty rather than as formula text.
    """
    try:
        workbook = load_workbook(io.BytesIO(data), data_only=True)
    except _READ_ERRORS as exc:
        raise ExtractionError(f"unreadable workbook: {exc}") from exc

    rows = []
    try:
        for sheet in workbook.worksheets:
            grid = _sheet_grid(sheet)
            for row_index, values in enumerate(grid, start=1):
                texts = [cell_text(value) for value in values]
                if not any(texts):
                    continue
                rows.append(
                    tuple(
                        RawCell(text=text, sheet=sheet.title, row=row_index, column=column)
                        for column, text in enumerate(texts, start=1)
                    )
                )
    except _READ_ERRORS as exc:
        raise ExtractionError(f"workbook content could not be read: {exc}") from exc
    finally:
        workbook.close()

    table = RawTable(source_format=DocumentFormat.SPREADSHEET, rows=tuple(rows))
    if table.is_empty:
        raise ExtractionError("workbook has no non-empty cells")
    return table


def _sheet_grid(sheet) -> List[List[Any]]:
    grid = [list(values) for values in sheet.iter_rows(values_only=True)]
    # Only the top-left cell of a merged range carries the value.
    for merged in sheet.merged_cells.ranges:
        value = sheet.cell(row=merged.min_row, column=merged.min_col).value
        for row in range(merged.min_row, merged.max_row + 1):
            for column in range(merged.min_col, merged.max_col + 1):
                grid[row - 1][column - 1] = value
    return grid


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()
