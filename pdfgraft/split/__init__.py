"""Split a PDF into one document per page range."""

from .splitter import PdfSplitter, split_pdf

__all__ = ["PdfSplitter", "split_pdf"]
