import codecs
import csv
import io

import chardet

from .errors import ExtractionError
from .models import DocumentFormat, RawCell, RawTable


JAPANESE_ENCODINGS = {
    "shift_jis": "cp932",
    "shift-jis": "cp932",
    "sjis": "cp932",
    "cp932": "cp932",
    "windows-31j": "cp932",
    "euc-jp": "euc-jp",
    "iso-2022-jp": "iso-2022-jp",
}
DEFAULT_ENCODING = "cp932"


def detect_encoding(raw: bytes) -> str:
    """Guess the encoding of a CSV export.

    Japanese business exports are usually Shift-JIS (cp932) when they are
    not UTF-8, so cp932 is preferred over a non-Japanese chardet guess.
    """
    if raw.startswith(codecs.BOM_UTF8):
        return "utf-8-sig"
    try:
        raw.decode("utf-8")
        return "utf-8"
    except UnicodeDecodeError:
        pass
    guess = (chardet.detect(raw).get("encoding") or "").lower()
    if guess in JAPANESE_ENCODINGS:
        return JAPANESE_ENCODINGS[guess]
    if _decodes(raw, DEFAULT_ENCODING):
        return DEFAULT_ENCODING
    if guess and _decodes(raw, guess):
        return guess
    return DEFAULT_ENCODING


def _decodes(raw: bytes, encoding: str) -> bool:
    try:
        raw.decode(encoding)
    except (UnicodeDecodeError, LookupError):
        return False
    return True


def extract_csv_table(data: bytes, delimiter: str = ",") -> RawTable:
    encoding = detect_encoding(data)
    try:
        text = data.decode(encoding)
    except UnicodeDecodeError as exc:
        raise ExtractionError(f"CSV could not be decoded as {encoding}") from exc

    rows = []
    try:
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
        for row_index, values in enumerate(reader, start=1):
            texts = [value.strip() for value in values]
            if not any(texts):
                continue
            rows.append(
                tuple(
                    RawCell(text=value, sheet="", row=row_index, column=column)
                    for column, value in enumerate(texts, start=1)
                )
            )
    except csv.Error as exc:
        raise ExtractionError(f"malformed CSV: {exc}") from exc

    table = RawTable(source_format=DocumentFormat.CSV, rows=tuple(rows))
    if table.is_empty:
        raise ExtractionError("CSV has no non-empty cells")
    return table
