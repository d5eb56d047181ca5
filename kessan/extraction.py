from typing import Callable, Dict

from .csv_loader import extract_csv_table
from .models import DocumentFormat, RawTable
from .pdf_loader import extract_pdf_table
from .spreadsheet_loader import extract_spreadsheet_table


EXTRACTORS: Dict[DocumentFormat, Callable[..., RawTable]] = {
    DocumentFormat.PDF: lambda data, delimiter: extract_pdf_table(data),
    DocumentFormat.SPREADSHEET: lambda data, delimiter: extract_spreadsheet_table(data),
    DocumentFormat.CSV: lambda data, delimiter: extract_csv_table(data, delimiter=delimiter),
}


def extract_table(fmt: DocumentFormat, data: bytes, delimiter: str = ",") -> RawTable:
    return EXTRACTORS[fmt](data, delimiter)
