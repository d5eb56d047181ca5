"""Error kinds raised while ingesting and analysing a statement."""


class KessanError(RuntimeError):
    """Base error for document ingestion and analysis."""


class UnsupportedFormatError(KessanError):
    """Raised when no extractor recognises the document bytes."""


class ExtractionError(KessanError):
    """Raised when an extractor produces no usable text or table."""


class DocumentTooLargeError(KessanError):
    """Raised when a document exceeds the configured byte ceiling."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"document is {size} bytes, limit is {limit} bytes")
        self.size = size
        self.limit = limit


class FieldParseError(KessanError, ValueError):
    """Raised when a single field cannot be normalised."""

    def __init__(self, message: str, text: str = "") -> None:
        super().__init__(message)
        self.text = text


class AmountParseError(FieldParseError):
    """Raised when text is not a recognisable monetary amount."""


class DateParseError(FieldParseError):
    """Raised when text is not a recognisable calendar date."""


class ValidationError(KessanError):
    """Raised when a mandatory statement or section is missing or inconsistent."""
