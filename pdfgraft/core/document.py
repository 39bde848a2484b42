"""Object table model of a PDF document.

A :class:`Document` is an explicit table mapping :class:`ObjectId` to
:mod:`pypdf.generic` values, plus a trailer dictionary and a version string.
References inside values are plain :class:`~pypdf.generic.IndirectObject`
instances that are only ever resolved through the owning table, never
through a reader, so tables loaded from different files can be combined
without one document's numbering leaking into another.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, NamedTuple, Optional, Set, Tuple

from pypdf import PdfReader
from pypdf.generic import (
    ArrayObject,
    BooleanObject,
    ByteStringObject,
    DictionaryObject,
    FloatObject,
    IndirectObject,
    NameObject,
    NullObject,
    NumberObject,
    PdfObject,
    StreamObject,
    TextStringObject,
)

from ..exceptions import CorruptedPdfError, EncryptedPdfError, PageNotFoundError, PdfFileNotFoundError
from ..settings import DEFAULT_PDF_VERSION
from .utils import PathLike

LOGGER = logging.getLogger("pdfgraft.core")

INHERITABLE_PAGE_ATTRIBUTES = ("/Resources", "/MediaBox", "/CropBox", "/Rotate")

_HEADER_RE = re.compile(rb"%PDF-(\d\.\d)")
_MAX_REFERENCE_CHAIN = 32

# Ordered: NameObject and TextStringObject are both ``str`` subclasses and
# StreamObject is a DictionaryObject subclass.
_VARIANT_TAGS: Tuple[Tuple[type, str], ...] = (
    (NullObject, "Null"),
    (BooleanObject, "Boolean"),
    (IndirectObject, "Reference"),
    (NameObject, "Name"),
    (NumberObject, "Integer"),
    (FloatObject, "Real"),
    (ByteStringObject, "String"),
    (TextStringObject, "String"),
    (StreamObject, "Stream"),
    (DictionaryObject, "Dictionary"),
    (ArrayObject, "Array"),
)


class ObjectId(NamedTuple):
    """``(number, generation)`` key of an object within one document."""

    number: int
    generation: int = 0

    @classmethod
    def of(cls, reference: IndirectObject) -> "ObjectId":
        return cls(int(reference.idnum), int(reference.generation))

    def reference(self) -> IndirectObject:
        """Return a detached reference to this id for use inside a table."""

        return IndirectObject(self.number, self.generation, None)

    def __str__(self) -> str:
        return f"{self.number} {self.generation} R"


def variant_name(value: object) -> str:
    """Return the object-variant tag (``"Dictionary"``, ``"Stream"`` ...) of *value*."""

    for cls, name in _VARIANT_TAGS:
        if isinstance(value, cls):
            return name
    return type(value).__name__


def iter_references(value: object) -> Iterator[IndirectObject]:
    """Yield every reference nested in *value* without following any of them."""

    stack = [value]
    while stack:
        item = stack.pop()
        if isinstance(item, IndirectObject):
            yield item
        elif isinstance(item, DictionaryObject):
            stack.extend(dict.values(item))
        elif isinstance(item, ArrayObject):
            stack.extend(item)


def raw_entry(dictionary: DictionaryObject, key: str) -> Optional[PdfObject]:
    """Return ``dictionary[key]`` without resolving references, or ``None``."""

    if key in dictionary:
        return dictionary.raw_get(key)
    return None


def type_name(value: object) -> Optional[str]:
    if isinstance(value, DictionaryObject):
        entry = raw_entry(value, "/Type")
        if isinstance(entry, NameObject):
            return str(entry)
    return None


def is_page_node(value: object) -> bool:
    """Return ``True`` for page objects and page-tree nodes."""

    return type_name(value) in ("/Page", "/Pages")


@dataclass
class Document:
    """An object table, a trailer dictionary and a declared version."""

    objects: Dict[ObjectId, PdfObject] = field(default_factory=dict)
    trailer: DictionaryObject = field(default_factory=DictionaryObject)
    version: str = DEFAULT_PDF_VERSION
    path: Optional[Path] = None
    _highest: Optional[int] = field(default=None, init=False, repr=False, compare=False)

    # -- table access --------------------------------------------------------

    def __contains__(self, object_id: object) -> bool:
        return object_id in self.objects

    def __len__(self) -> int:
        return len(self.objects)

    def get(self, object_id: ObjectId) -> Optional[PdfObject]:
        return self.objects.get(object_id)

    def allocate_id(self) -> ObjectId:
        """Reserve and return the next unused object number with generation ``0``."""

        if self._highest is None:
            self._highest = max((object_id.number for object_id in self.objects), default=0)
        self._highest += 1
        return ObjectId(self._highest, 0)

    def insert(self, object_id: ObjectId, value: PdfObject) -> None:
        if object_id in self.objects:
            raise ValueError(f"Object {object_id} already exists")
        self.objects[object_id] = value
        if self._highest is not None and object_id.number > self._highest:
            self._highest = object_id.number

    def add_object(self, value: PdfObject) -> ObjectId:
        object_id = self.allocate_id()
        self.insert(object_id, value)
        return object_id

    def resolve(self, value: object) -> Optional[PdfObject]:
        """Follow references through this table; ``None`` when a target is absent."""

        for _ in range(_MAX_REFERENCE_CHAIN):
            if not isinstance(value, IndirectObject):
                return value  # type: ignore[return-value]
            value = self.objects.get(ObjectId.of(value))
        return None

    # -- structure -----------------------------------------------------------

    @property
    def is_encrypted(self) -> bool:
        return "/Encrypt" in self.trailer

    def catalog(self) -> Optional[DictionaryObject]:
        catalog = self.resolve(raw_entry(self.trailer, "/Root"))
        return catalog if isinstance(catalog, DictionaryObject) else None

    def info(self) -> Optional[DictionaryObject]:
        info = self.resolve(raw_entry(self.trailer, "/Info"))
        return info if isinstance(info, DictionaryObject) else None

    def page_ids(self) -> List[ObjectId]:
        """Return page ids in document order (depth-first over the page tree)."""

        catalog = self.catalog()
        root = raw_entry(catalog, "/Pages") if catalog is not None else None
        if not isinstance(root, IndirectObject):
            return []

        pages: List[ObjectId] = []
        seen: Set[ObjectId] = set()
        stack = [ObjectId.of(root)]
        while stack:
            object_id = stack.pop()
            if object_id in seen:
                continue
            seen.add(object_id)
            node = self.objects.get(object_id)
            if not isinstance(node, DictionaryObject):
                LOGGER.warning("Page tree entry %s is missing from %s", object_id, self.path)
                continue
            node_type = type_name(node)
            if node_type == "/Pages" or (node_type is None and "/Kids" in node):
                kids = self.resolve(raw_entry(node, "/Kids"))
                if isinstance(kids, ArrayObject):
                    stack.extend(
                        ObjectId.of(kid) for kid in reversed(kids) if isinstance(kid, IndirectObject)
                    )
            else:
                pages.append(object_id)
        return pages

    @property
    def page_count(self) -> int:
        return len(self.page_ids())

    def page_id(self, page_number: int) -> ObjectId:
        """Return the id of 1-indexed *page_number*."""

        pages = self.page_ids()
        if page_number < 1 or page_number > len(pages):
            raise PageNotFoundError(self.path, page_number)
        return pages[page_number - 1]

    def inherited_attribute(self, page_id: ObjectId, key: str) -> Optional[PdfObject]:
        """Return *key* from the page or its nearest page-tree ancestor."""

        seen: Set[ObjectId] = set()
        object_id: Optional[ObjectId] = page_id
        while object_id is not None and object_id not in seen:
            seen.add(object_id)
            node = self.objects.get(object_id)
            if not isinstance(node, DictionaryObject):
                return None
            if key in node:
                return node.raw_get(key)
            parent = raw_entry(node, "/Parent")
            object_id = ObjectId.of(parent) if isinstance(parent, IndirectObject) else None
        return None

    def _trailer_references(self) -> List[IndirectObject]:
        # The encryption dictionary is never part of the object graph we copy.
        return [
            reference
            for key, value in self.trailer.items()
            if key != "/Encrypt"
            for reference in iter_references(value)
        ]

    def reachable_ids(self) -> Set[ObjectId]:
        """Return ids reachable from the trailer (excluding ``/Encrypt``)."""

        reachable: Set[ObjectId] = set()
        stack = [ObjectId.of(reference) for reference in self._trailer_references()]
        while stack:
            object_id = stack.pop()
            if object_id in reachable or object_id not in self.objects:
                continue
            reachable.add(object_id)
            stack.extend(ObjectId.of(ref) for ref in iter_references(self.objects[object_id]))
        return reachable

    def dangling_references(self) -> List[Tuple[Optional[ObjectId], ObjectId]]:
        """Return ``(holder, target)`` pairs whose target is absent from the table.

        A holder of ``None`` means the reference sits in the trailer.
        """

        dangling: List[Tuple[Optional[ObjectId], ObjectId]] = []
        for reference in self._trailer_references():
            if ObjectId.of(reference) not in self.objects:
                dangling.append((None, ObjectId.of(reference)))
        for holder, value in self.objects.items():
            for reference in iter_references(value):
                target = ObjectId.of(reference)
                if target not in self.objects:
                    dangling.append((holder, target))
        return dangling


def _read_version(raw_bytes: bytes) -> Optional[str]:
    match = _HEADER_RE.search(raw_bytes[:1024])
    return match.group(1).decode("ascii") if match else None


def _open_reader(path: Path, raw_bytes: bytes) -> PdfReader:
    try:
        reader = PdfReader(io.BytesIO(raw_bytes), strict=False)
    except Exception as exc:  # pypdf raises a variety of parse errors
        LOGGER.error("Failed to parse PDF %s: %s", path, exc)
        raise CorruptedPdfError(path, str(exc)) from exc

    if reader.is_encrypted:
        LOGGER.debug("Attempting to open encrypted PDF %s with an empty password", path)
        try:
            decrypted = reader.decrypt("")
        except Exception as exc:  # missing crypto providers, unsupported handlers
            raise EncryptedPdfError(path) from exc
        if not decrypted:
            raise EncryptedPdfError(path)
    return reader


def load_document(path: PathLike) -> Document:
    """Load the PDF at *path* into a read-only :class:`Document`.

    The table holds every object reachable from the trailer. Objects the
    cross-reference data points at but that cannot be found are left out, so
    references to them show up in :meth:`Document.dangling_references`.

    Raises:
        PdfFileNotFoundError: If *path* does not exist.
        CorruptedPdfError: If the file cannot be parsed.
    """

    pdf_path = Path(path)
    if not pdf_path.is_file():
        raise PdfFileNotFoundError(pdf_path)

    try:
        raw_bytes = pdf_path.read_bytes()
    except OSError as exc:
        raise CorruptedPdfError(pdf_path, f"unable to read file: {exc}") from exc

    version = _read_version(raw_bytes)
    if version is None:
        raise CorruptedPdfError(pdf_path, "missing %PDF header")

    reader = _open_reader(pdf_path, raw_bytes)

    trailer = DictionaryObject()
    for key, value in reader.trailer.items():
        if key in ("/Prev", "/XRefStm"):
            continue
        trailer[NameObject(key)] = value

    document = Document(trailer=trailer, version=version, path=pdf_path)
    stack = [ObjectId.of(reference) for reference in document._trailer_references()]
    while stack:
        object_id = stack.pop()
        if object_id in document.objects:
            continue
        try:
            value = IndirectObject(object_id.number, object_id.generation, reader).get_object()
        except Exception as exc:  # pypdf raises a variety of parse errors
            LOGGER.error("Failed to read object %s from %s: %s", object_id, pdf_path, exc)
            raise CorruptedPdfError(pdf_path, f"object {object_id}: {exc}") from exc
        if value is None or isinstance(value, NullObject):
            LOGGER.debug("Object %s is not defined in %s", object_id, pdf_path)
            continue
        document.objects[object_id] = value
        stack.extend(ObjectId.of(reference) for reference in iter_references(value))

    if document.catalog() is None:
        raise CorruptedPdfError(pdf_path, "document catalog is missing")

    LOGGER.debug(
        "Loaded %s: version=%s objects=%d pages=%d",
        pdf_path,
        document.version,
        len(document.objects),
        document.page_count,
    )
    return document


__all__ = [
    "INHERITABLE_PAGE_ATTRIBUTES",
    "Document",
    "ObjectId",
    "is_page_node",
    "iter_references",
    "load_document",
    "raw_entry",
    "type_name",
    "variant_name",
]
