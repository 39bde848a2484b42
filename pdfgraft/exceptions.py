"""Custom exceptions raised by :mod:`pdfgraft`.

Every exception carries a stable :attr:`PdfGraftError.kind` string so that
callers (the command loop, the CLI) can report failures without matching on
class names.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union


class PdfGraftError(Exception):
    """Base exception for all errors raised by :mod:`pdfgraft`."""

    kind = "error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown pdfgraft error occurred."


class PdfFileNotFoundError(PdfGraftError):
    """Raised when an input file does not exist."""

    kind = "file_not_found"

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        super().__init__(f"File not found: {self.path}")


class CorruptedPdfError(PdfGraftError):
    """Raised when a document cannot be parsed."""

    kind = "corrupted_pdf"

    def __init__(self, path: Union[str, Path], reason: str = "") -> None:
        self.path = Path(path)
        self.reason = reason
        message = f"Corrupted or invalid PDF: {self.path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class EncryptedPdfError(CorruptedPdfError):
    """Raised when an encrypted source cannot be opened without a password."""

    kind = "encrypted_pdf"

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__(path, "encrypted document requires a password")


class InvalidPageRangeError(PdfGraftError):
    """Raised when a page range is malformed or out of bounds."""

    kind = "invalid_page_range"

    def __init__(self, description: str = "") -> None:
        self.description = description
        super().__init__(f"Invalid page range: {description}" if description else "")

    @property
    def default_message(self) -> str:
        return "Invalid page range."


class PageNotFoundError(PdfGraftError):
    """Raised when a page number cannot be resolved to an object during copy."""

    kind = "page_not_found"

    def __init__(self, path: Union[str, Path, None], page: int) -> None:
        self.path = Path(path) if path is not None else None
        self.page = page
        super().__init__(f"Page {page} not found in {self.path or '<memory>'}")


class ProcessingFailedError(PdfGraftError):
    """Raised when assembling or writing an output document fails."""

    kind = "processing_failed"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Processing failed: {reason}")


class ValidationError(PdfGraftError):
    """Raised when a request is malformed (empty file list, bad page order)."""

    kind = "validation"

    @property
    def default_message(self) -> str:
        return "Invalid request."


__all__ = [
    "PdfGraftError",
    "PdfFileNotFoundError",
    "CorruptedPdfError",
    "EncryptedPdfError",
    "InvalidPageRangeError",
    "PageNotFoundError",
    "ProcessingFailedError",
    "ValidationError",
]
