import io
import zipfile
from pathlib import PurePosixPath

from .errors import UnsupportedFormatError
from .models import DocumentFormat


PDF_SIGNATURE = b"%PDF"
ZIP_SIGNATURE = b"PK\x03\x04"
OLE_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

EXTENSION_FORMATS = {
    ".pdf": DocumentFormat.PDF,
    ".xlsx": DocumentFormat.SPREADSHEET,
    ".xlsm": DocumentFormat.SPREADSHEET,
    ".csv": DocumentFormat.CSV,
    ".tsv": DocumentFormat.CSV,
    ".txt": DocumentFormat.CSV,
}

MIME_FORMATS = {
    "application/pdf": DocumentFormat.PDF,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": DocumentFormat.SPREADSHEET,
    "application/vnd.ms-excel.sheet.macroenabled.12": DocumentFormat.SPREADSHEET,
    "text/csv": DocumentFormat.CSV,
    "text/tab-separated-values": DocumentFormat.CSV,
    "text/plain": DocumentFormat.CSV,
}


def detect_format(data: bytes, hint: str = "") -> DocumentFormat:
    """Pick the extractor for a document.

    Byte signatures decide first; the filename or MIME hint only breaks ties
    for bytes without a signature.
    """
    if not data:
        raise UnsupportedFormatError("document is empty")
    head = data[:8]
    if head.startswith(PDF_SIGNATURE):
        return DocumentFormat.PDF
    if head.startswith(ZIP_SIGNATURE):
        if _is_xlsx(data):
            return DocumentFormat.SPREADSHEET
        raise UnsupportedFormatError("zip archive is not an xlsx workbook")
    if head.startswith(OLE_SIGNATURE):
        raise UnsupportedFormatError("legacy .xls workbooks are not supported, save as .xlsx")

    hinted = _format_from_hint(hint)
    if hinted is DocumentFormat.CSV and _looks_like_text(data):
        return DocumentFormat.CSV
    if hinted is not None and hinted is not DocumentFormat.CSV:
        raise UnsupportedFormatError(f"content does not match the {hinted.value} hint {hint!r}")
    if _looks_like_text(data):
        return DocumentFormat.CSV
    raise UnsupportedFormatError(f"unrecognised document format (hint {hint!r})")


def _format_from_hint(hint: str):
    value = (hint or "").strip().lower()
    if not value:
        return None
    mime = value.split(";", 1)[0].strip()
    if mime in MIME_FORMATS:
        return MIME_FORMATS[mime]
    return EXTENSION_FORMATS.get(PurePosixPath(value).suffix)


def _is_xlsx(data: bytes) -> bool:
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            return "xl/workbook.xml" in archive.namelist()
    except (zipfile.BadZipFile, ValueError, OSError):
        return False


def _looks_like_text(data: bytes) -> bool:
    sample = data[:4096]
    if b"\x00" in sample:
        return False
    # ESC stays allowed for ISO-2022-JP exports.
    control = sum(1 for byte in sample if byte < 0x09 or (0x0D < byte < 0x20 and byte != 0x1B))
    return control <= len(sample) // 100
