"""PDF merge and split toolkit built on object-graph copying."""

from __future__ import annotations

__version__ = "1.0.0"

from pathlib import Path
from typing import Sequence

from . import core, merge, split
from .exceptions import (
    CorruptedPdfError,
    EncryptedPdfError,
    InvalidPageRangeError,
    PageNotFoundError,
    PdfFileNotFoundError,
    PdfGraftError,
    ProcessingFailedError,
    ValidationError,
)
from .merge import PdfMerger, merge_pdfs
from .metadata import MetadataExtractor, PdfMetadata, ValidationReport, get_pdf_info, validate_pdf
from .ranges import PageRange, PageRangeParser, parse_page_ranges
from .settings import MergeConfig, SplitConfig
from .split import PdfSplitter, split_pdf
from .types import MergeRequest, MergeResult, SplitRequest, SplitResult

__all__ = [
    "__version__",
    "core",
    "merge",
    "split",
    "merge_pdfs",
    "split_pdf",
    "get_pdf_info",
    "validate_pdf",
    "parse_page_ranges",
    "merge_documents",
    "split_document",
    "PdfMerger",
    "PdfSplitter",
    "MetadataExtractor",
    "PageRange",
    "PageRangeParser",
    "MergeConfig",
    "SplitConfig",
    "MergeRequest",
    "MergeResult",
    "SplitRequest",
    "SplitResult",
    "PdfMetadata",
    "ValidationReport",
    "PdfGraftError",
    "PdfFileNotFoundError",
    "CorruptedPdfError",
    "EncryptedPdfError",
    "InvalidPageRangeError",
    "PageNotFoundError",
    "ProcessingFailedError",
    "ValidationError",
]


def merge_documents(
    inputs: Sequence[str | Path],
    output: str | Path,
    *,
    page_order: Sequence[int] | None = None,
) -> MergeResult:
    """Convenience wrapper around :func:`merge.merge_pdfs`."""

    return merge_pdfs(inputs, output, page_order=page_order)


def split_document(
    input: str | Path,
    output_dir: str | Path,
    ranges: str | Sequence[object],
) -> SplitResult:
    """Convenience wrapper around :func:`split.split_pdf`."""

    return split_pdf(input, output_dir, ranges)
