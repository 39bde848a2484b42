"""Copy pages and their dependency closure between object tables."""

from __future__ import annotations

import logging
from collections import deque
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

from pypdf.generic import (
    ArrayObject,
    DecodedStreamObject,
    DictionaryObject,
    EncodedStreamObject,
    IndirectObject,
    NameObject,
    NullObject,
    PdfObject,
    StreamObject,
)

from ..exceptions import PageNotFoundError
from .document import (
    INHERITABLE_PAGE_ATTRIBUTES,
    Document,
    ObjectId,
    is_page_node,
    iter_references,
    raw_entry,
)

LOGGER = logging.getLogger("pdfgraft.core")


def clone_value(value: PdfObject, skip_keys: Sequence[str] = ()) -> PdfObject:
    """Deep-copy containers of *value*; references are detached, scalars shared.

    Stream ``/Length`` entries are dropped because they are recomputed when
    the stream is written.
    """

    if isinstance(value, IndirectObject):
        return IndirectObject(value.idnum, value.generation, None)
    if isinstance(value, StreamObject):
        stream: StreamObject
        if isinstance(value, EncodedStreamObject):
            stream = EncodedStreamObject()
            stream._data = value._data
        else:
            stream = DecodedStreamObject()
            stream.set_data(value.get_data())
        _copy_entries(value, stream, tuple(skip_keys) + ("/Length",))
        return stream
    if isinstance(value, DictionaryObject):
        dictionary = DictionaryObject()
        _copy_entries(value, dictionary, skip_keys)
        return dictionary
    if isinstance(value, ArrayObject):
        return ArrayObject(clone_value(item) for item in value)
    return value


def _copy_entries(source: DictionaryObject, target: DictionaryObject, skip_keys: Sequence[str]) -> None:
    for key, item in source.items():
        if key in skip_keys:
            continue
        target[NameObject(key)] = clone_value(item)


class RemapTable:
    """Source :class:`ObjectId` to destination :class:`ObjectId` for one copy."""

    def __init__(self) -> None:
        self._mapping: Dict[ObjectId, ObjectId] = {}

    def record(self, source: ObjectId, destination: ObjectId) -> None:
        existing = self._mapping.get(source)
        if existing is not None and existing != destination:
            raise ValueError(f"{source} is already mapped to {existing}")
        self._mapping[source] = destination

    def get(self, source: ObjectId) -> Optional[ObjectId]:
        return self._mapping.get(source)

    def __contains__(self, source: object) -> bool:
        return source in self._mapping

    def __len__(self) -> int:
        return len(self._mapping)

    def __iter__(self) -> Iterator[ObjectId]:
        return iter(self._mapping)

    def items(self) -> List[Tuple[ObjectId, ObjectId]]:
        return list(self._mapping.items())


class ObjectGraphCopier:
    """Copy objects from one read-only source into a destination table.

    Each copied object gets a fresh destination id; the source-to-destination
    mapping is recorded in :attr:`remap`. References inside copied values keep
    their source numbering until :meth:`finish` rewrites them, which is why a
    copier must always be finished before the destination is assembled.
    Using the copier as a context manager does that on a clean exit.

    Page objects and page-tree nodes are never pulled in through references:
    a reference to a page that was not copied explicitly becomes ``null``.
    """

    def __init__(self, source: Document, destination: Document) -> None:
        self.source = source
        self.destination = destination
        self.remap = RemapTable()
        self.unresolved_references = 0
        self._inserted: List[ObjectId] = []
        self._missing: Set[ObjectId] = set()
        self._finished = False

    def __enter__(self) -> "ObjectGraphCopier":
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        if exc_type is None:
            self.finish()

    @property
    def copied_objects(self) -> int:
        return len(self._inserted)

    def _ensure_open(self) -> None:
        if self._finished:
            raise RuntimeError("Copier has already been finished")

    def _insert(self, source_id: Optional[ObjectId], value: PdfObject) -> ObjectId:
        new_id = self.destination.allocate_id()
        self.destination.insert(new_id, value)
        if source_id is not None:
            self.remap.record(source_id, new_id)
        self._inserted.append(new_id)
        return new_id

    def _page_number_of(self, page_id: ObjectId) -> int:
        try:
            return self.source.page_ids().index(page_id) + 1
        except ValueError:
            return 0

    def copy_page(self, page_id: ObjectId, page_number: Optional[int] = None) -> ObjectId:
        """Copy the page *page_id* and everything it depends on.

        Inheritable attributes (``/Resources``, ``/MediaBox``, ``/CropBox``,
        ``/Rotate``) found only on page-tree ancestors are copied onto the
        page itself; ``/Parent`` is dropped and set again by the assembler.
        """

        self._ensure_open()
        existing = self.remap.get(page_id)
        if existing is not None:
            return existing

        page = self.source.get(page_id)
        if not isinstance(page, DictionaryObject):
            number = page_number if page_number is not None else self._page_number_of(page_id)
            raise PageNotFoundError(self.source.path, number)

        page_copy = clone_value(page, skip_keys=("/Parent",))
        for key in INHERITABLE_PAGE_ATTRIBUTES:
            if key in page_copy:
                continue
            inherited = self.source.inherited_attribute(page_id, key)
            if inherited is not None:
                page_copy[NameObject(key)] = clone_value(inherited)

        new_id = self._insert(page_id, page_copy)
        self._copy_closure(page_copy)
        LOGGER.debug("Copied page %s as %s", page_id, new_id)
        return new_id

    def copy_object(self, source_id: ObjectId) -> Optional[ObjectId]:
        """Copy a non-page object (and its closure); ``None`` if it is absent."""

        self._ensure_open()
        existing = self.remap.get(source_id)
        if existing is not None:
            return existing
        value = self.source.get(source_id)
        if value is None:
            return None
        if is_page_node(value):
            raise ValueError(f"{source_id} is a page tree node; use copy_page")
        value_copy = clone_value(value)
        new_id = self._insert(source_id, value_copy)
        self._copy_closure(value_copy)
        return new_id

    def copy_info(self) -> Optional[ObjectId]:
        """Copy the source's document Info dictionary, if it has one."""

        info = raw_entry(self.source.trailer, "/Info")
        if isinstance(info, IndirectObject):
            return self.copy_object(ObjectId.of(info))
        if isinstance(info, DictionaryObject):
            self._ensure_open()
            info_copy = clone_value(info)
            new_id = self._insert(None, info_copy)
            self._copy_closure(info_copy)
            return new_id
        return None

    def _copy_closure(self, root: PdfObject) -> None:
        queue = deque(iter_references(root))
        while queue:
            source_id = ObjectId.of(queue.popleft())
            if source_id in self.remap or source_id in self._missing:
                continue
            value = self.source.get(source_id)
            if value is None:
                self._missing.add(source_id)
                continue
            if is_page_node(value):
                continue
            value_copy = clone_value(value)
            self._insert(source_id, value_copy)
            queue.extend(iter_references(value_copy))

    def finish(self) -> RemapTable:
        """Rewrite references inside the objects this copier inserted.

        Mapped targets point at their destination ids; anything else becomes
        ``null``. Objects placed in the destination by other copiers are not
        touched.
        """

        if self._finished:
            return self.remap
        for object_id in self._inserted:
            value = self.destination.objects[object_id]
            self.destination.objects[object_id] = self._rewrite(value)
        self._finished = True
        if self.unresolved_references:
            LOGGER.info(
                "Replaced %d unresolved reference(s) from %s with null",
                self.unresolved_references,
                self.source.path,
            )
        return self.remap

    def _rewrite(self, value: PdfObject) -> PdfObject:
        if isinstance(value, IndirectObject):
            target = self.remap.get(ObjectId.of(value))
            if target is None:
                self.unresolved_references += 1
                return NullObject()
            return target.reference()
        if isinstance(value, DictionaryObject):
            for key, item in list(value.items()):
                value[key] = self._rewrite(item)
        elif isinstance(value, ArrayObject):
            for index, item in enumerate(value):
                value[index] = self._rewrite(item)
        return value


__all__ = ["ObjectGraphCopier", "RemapTable", "clone_value"]
