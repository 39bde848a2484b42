"""Document information and structural validation."""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pypdf.generic import (
    ArrayObject,
    ByteStringObject,
    DictionaryObject,
    FloatObject,
    IndirectObject,
    NumberObject,
    TextStringObject,
)

from .core.document import Document, ObjectId, load_document, raw_entry, variant_name
from .core.utils import PathLike
from .exceptions import CorruptedPdfError

LOGGER = logging.getLogger("pdfgraft.metadata")

LARGE_FILE_BYTES = 10 * 1024 * 1024
LARGE_PAGE_COUNT = 100

_INFO_FIELDS = (
    ("title", "/Title"),
    ("author", "/Author"),
    ("subject", "/Subject"),
    ("keywords", "/Keywords"),
    ("creator", "/Creator"),
    ("producer", "/Producer"),
    ("creation_date", "/CreationDate"),
    ("modification_date", "/ModDate"),
)


@dataclass(frozen=True)
class PdfMetadata:
    """Summary information describing a PDF document."""

    path: Optional[Path]
    file_size: int
    page_count: int
    pdf_version: str
    is_encrypted: bool
    title: Optional[str] = None
    author: Optional[str] = None
    subject: Optional[str] = None
    keywords: Optional[List[str]] = None
    creator: Optional[str] = None
    producer: Optional[str] = None
    creation_date: Optional[str] = None
    modification_date: Optional[str] = None
    first_page_size: Optional[Tuple[float, float]] = None
    has_annotations: bool = False
    has_forms: bool = False
    object_counts: Dict[str, int] = field(default_factory=dict)
    load_time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["path"] = str(self.path) if self.path is not None else None
        data["first_page_size"] = list(self.first_page_size) if self.first_page_size else None
        return data


class MetadataExtractor:
    """Read :class:`PdfMetadata` out of a loaded :class:`Document`."""

    def __init__(self, document: Document, load_time_ms: int = 0) -> None:
        self.document = document
        self.load_time_ms = load_time_ms

    @classmethod
    def from_path(cls, path: PathLike) -> "MetadataExtractor":
        started = time.perf_counter()
        document = load_document(path)
        return cls(document, int((time.perf_counter() - started) * 1000))

    def _info_value(self, info: DictionaryObject, key: str) -> Optional[str]:
        value = raw_entry(info, key)
        # Follow at most one level of indirection.
        if isinstance(value, IndirectObject):
            value = self.document.get(ObjectId.of(value))
        if isinstance(value, TextStringObject):
            return str(value)
        if isinstance(value, ByteStringObject):
            try:
                return bytes(value).decode("utf-8")
            except UnicodeDecodeError:
                return None
        return None

    def _page_size(self, page_id: ObjectId) -> Optional[Tuple[float, float]]:
        box = self.document.resolve(self.document.inherited_attribute(page_id, "/MediaBox"))
        if not isinstance(box, ArrayObject) or len(box) != 4:
            return None
        values = [self.document.resolve(item) for item in box]
        if not all(isinstance(item, (NumberObject, FloatObject)) for item in values):
            return None
        x0, y0, x1, y1 = (float(item) for item in values)
        return abs(x1 - x0), abs(y1 - y0)

    def _has_annotations(self, page_ids: List[ObjectId]) -> bool:
        for page_id in page_ids:
            page = self.document.get(page_id)
            if not isinstance(page, DictionaryObject):
                continue
            annotations = self.document.resolve(raw_entry(page, "/Annots"))
            if isinstance(annotations, ArrayObject) and len(annotations) > 0:
                return True
        return False

    def _has_forms(self, page_ids: List[ObjectId]) -> bool:
        """True when the catalog declares form fields or a page carries a widget."""

        catalog = self.document.catalog()
        form = self.document.resolve(raw_entry(catalog, "/AcroForm")) if catalog is not None else None
        if isinstance(form, DictionaryObject):
            fields = self.document.resolve(raw_entry(form, "/Fields"))
            if isinstance(fields, ArrayObject) and len(fields) > 0:
                return True

        for page_id in page_ids:
            page = self.document.get(page_id)
            if not isinstance(page, DictionaryObject):
                continue
            annotations = self.document.resolve(raw_entry(page, "/Annots"))
            if not isinstance(annotations, ArrayObject):
                continue
            for annotation in annotations:
                annotation = self.document.resolve(annotation)
                if isinstance(annotation, DictionaryObject) and raw_entry(annotation, "/Subtype") == "/Widget":
                    return True
        return False

    def extract(self) -> PdfMetadata:
        document = self.document
        page_ids = document.page_ids()
        fields: Dict[str, Any] = {}
        info = document.info()
        if info is not None:
            for name, key in _INFO_FIELDS:
                fields[name] = self._info_value(info, key)
        keywords = fields.pop("keywords", None)

        file_size = 0
        if document.path is not None and document.path.exists():
            file_size = document.path.stat().st_size

        metadata = PdfMetadata(
            path=document.path,
            file_size=file_size,
            page_count=len(page_ids),
            pdf_version=document.version,
            is_encrypted=document.is_encrypted,
            keywords=[word.strip() for word in keywords.split(",") if word.strip()] if keywords else None,
            first_page_size=self._page_size(page_ids[0]) if page_ids else None,
            has_annotations=self._has_annotations(page_ids),
            has_forms=self._has_forms(page_ids),
            object_counts=dict(Counter(variant_name(value) for value in document.objects.values())),
            load_time_ms=self.load_time_ms,
            **fields,
        )
        LOGGER.info(
            "PDF info: path=%s, pages=%s, encrypted=%s",
            metadata.path,
            metadata.page_count,
            metadata.is_encrypted,
        )
        return metadata


def get_pdf_info(path: PathLike) -> PdfMetadata:
    """Return :class:`PdfMetadata` describing the PDF located at *path*."""

    LOGGER.debug("Gathering PDF info for %s", path)
    return MetadataExtractor.from_path(path).extract()


@dataclass(frozen=True)
class ValidationIssue:
    severity: str
    kind: str
    description: str
    location: Optional[str] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


@dataclass
class ValidationReport:
    """Outcome of :func:`validate_pdf`; ``is_valid`` is false on any error."""

    path: Path
    is_valid: bool
    issues: List[ValidationIssue] = field(default_factory=list)
    metadata: Optional[PdfMetadata] = None
    recommendations: List[str] = field(default_factory=list)
    validation_time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": str(self.path),
            "is_valid": self.is_valid,
            "issues": [issue.to_dict() for issue in self.issues],
            "metadata": self.metadata.to_dict() if self.metadata is not None else None,
            "recommendations": list(self.recommendations),
            "validation_time_ms": self.validation_time_ms,
        }


def _structural_issues(document: Document) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    if document.page_count == 0:
        issues.append(
            ValidationIssue(
                "error",
                "no_pages",
                "Document contains no pages",
                location="catalog /Pages",
                suggestion="The document may be corrupted or malformed",
            )
        )

    dangling = document.dangling_references()
    if dangling:
        sample = ", ".join(str(target) for _, target in dangling[:5])
        holder = dangling[0][0]
        issues.append(
            ValidationIssue(
                "warning",
                "dangling_reference",
                f"{len(dangling)} reference(s) point at missing objects ({sample})",
                location=f"object {holder}" if holder is not None else "trailer",
                suggestion="Consider rebuilding the PDF",
            )
        )
    if document.is_encrypted:
        issues.append(
            ValidationIssue(
                "warning",
                "encrypted",
                "Document is encrypted with an empty user password",
                location="trailer /Encrypt",
                suggestion="Encrypted PDFs may have limited functionality",
            )
        )
    return issues


def _recommendations(issues: List[ValidationIssue], metadata: Optional[PdfMetadata]) -> List[str]:
    if metadata is None and any(issue.severity == "critical" for issue in issues):
        return ["Verify file integrity", "Check if file is a valid PDF"]

    recommendations: List[str] = []
    if any(issue.severity in ("error", "critical") for issue in issues):
        recommendations.append("Consider repairing or recreating the PDF")
    if any(issue.kind == "encrypted" for issue in issues):
        recommendations.append("Remove encryption for full functionality")
    if metadata is not None:
        if metadata.file_size > LARGE_FILE_BYTES:
            recommendations.append("Consider compressing the PDF to reduce file size")
        if not metadata.is_encrypted and metadata.has_forms:
            recommendations.append("Consider adding form field validation")
        if metadata.page_count > LARGE_PAGE_COUNT:
            recommendations.append("Large document - consider splitting into smaller files")
    return recommendations


def validate_pdf(path: PathLike, *, extract_metadata: bool = True) -> ValidationReport:
    """Check that *path* loads and has a sound structure.

    Parse failures are reported as critical issues rather than raised; a
    missing file still raises :class:`~pdfgraft.exceptions.PdfFileNotFoundError`.
    """

    started = time.perf_counter()
    pdf_path = Path(path)
    LOGGER.debug("Validating PDF at %s", pdf_path)
    issues: List[ValidationIssue] = []
    metadata: Optional[PdfMetadata] = None
    try:
        document = load_document(pdf_path)
    except CorruptedPdfError as exc:
        issues.append(
            ValidationIssue(
                "critical",
                exc.kind,
                exc.message,
                location="file",
                suggestion="Verify that the file is a valid PDF and not corrupted",
            )
        )
    else:
        load_time_ms = int((time.perf_counter() - started) * 1000)
        issues.extend(_structural_issues(document))
        if extract_metadata:
            metadata = MetadataExtractor(document, load_time_ms).extract()

    is_valid = not any(issue.severity in ("error", "critical") for issue in issues)
    if is_valid:
        LOGGER.info("Validated PDF %s successfully", pdf_path)
    else:
        LOGGER.warning("PDF %s failed validation with %d issue(s)", pdf_path, len(issues))
    return ValidationReport(
        path=pdf_path,
        is_valid=is_valid,
        issues=issues,
        metadata=metadata,
        recommendations=_recommendations(issues, metadata),
        validation_time_ms=int((time.perf_counter() - started) * 1000),
    )


__all__ = [
    "MetadataExtractor",
    "PdfMetadata",
    "ValidationIssue",
    "ValidationReport",
    "get_pdf_info",
    "validate_pdf",
]
