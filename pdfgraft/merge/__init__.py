"""Merge several PDFs into one document."""

from .merger import PdfMerger, merge_pdfs

__all__ = ["PdfMerger", "merge_pdfs"]
