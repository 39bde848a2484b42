"""Carry document outlines (bookmarks) over to copied pages."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from pypdf.generic import (
    ArrayObject,
    ByteStringObject,
    DictionaryObject,
    IndirectObject,
    NameObject,
    NullObject,
    NumberObject,
    PdfObject,
    TextStringObject,
)

from .copier import RemapTable
from .document import Document, ObjectId, raw_entry

LOGGER = logging.getLogger("pdfgraft.core")

_MAX_NAME_TREE_DEPTH = 32


@dataclass
class OutlineItem:
    """An outline entry bound to a page of the destination document."""

    title: PdfObject
    page: ObjectId
    view: Tuple[PdfObject, ...] = (NameObject("/Fit"),)
    children: List["OutlineItem"] = field(default_factory=list)

    @property
    def total(self) -> int:
        return 1 + sum(child.total for child in self.children)


def _as_text(value: object) -> str:
    if isinstance(value, ByteStringObject):
        return bytes(value).decode("latin-1")
    return str(value)


def _name_tree_lookup(document: Document, node: object, name: str, depth: int = 0) -> Optional[PdfObject]:
    node = document.resolve(node)
    if not isinstance(node, DictionaryObject) or depth > _MAX_NAME_TREE_DEPTH:
        return None
    names = document.resolve(raw_entry(node, "/Names"))
    if isinstance(names, ArrayObject):
        for index in range(0, len(names) - 1, 2):
            if _as_text(document.resolve(names[index])) == name:
                return names[index + 1]
    kids = document.resolve(raw_entry(node, "/Kids"))
    if isinstance(kids, ArrayObject):
        for kid in kids:
            found = _name_tree_lookup(document, kid, name, depth + 1)
            if found is not None:
                return found
    return None


def _named_destination(document: Document, name: str) -> Optional[PdfObject]:
    catalog = document.catalog()
    if catalog is None:
        return None
    dests = document.resolve(raw_entry(catalog, "/Dests"))
    if isinstance(dests, DictionaryObject) and name in dests:
        return dests.raw_get(name)
    names = document.resolve(raw_entry(catalog, "/Names"))
    if isinstance(names, DictionaryObject):
        return _name_tree_lookup(document, raw_entry(names, "/Dests"), name)
    return None


def _destination_array(document: Document, item: DictionaryObject) -> Optional[ArrayObject]:
    target = raw_entry(item, "/Dest")
    if target is None:
        action = document.resolve(raw_entry(item, "/A"))
        if isinstance(action, DictionaryObject) and raw_entry(action, "/S") == "/GoTo":
            target = raw_entry(action, "/D")

    target = document.resolve(target)
    if isinstance(target, (NameObject, TextStringObject, ByteStringObject)):
        target = document.resolve(_named_destination(document, _as_text(target)))
    if isinstance(target, DictionaryObject):
        target = document.resolve(raw_entry(target, "/D"))
    if isinstance(target, ArrayObject) and target and isinstance(target[0], IndirectObject):
        return target
    return None


def read_outline(source: Document, remap: RemapTable) -> List[OutlineItem]:
    """Return *source*'s outline re-targeted at the pages recorded in *remap*.

    Items pointing at pages that were not copied are dropped; their children
    move up one level.
    """

    catalog = source.catalog()
    root = source.resolve(raw_entry(catalog, "/Outlines")) if catalog is not None else None
    if not isinstance(root, DictionaryObject):
        return []
    seen: Set[ObjectId] = set()
    return _read_level(source, remap, raw_entry(root, "/First"), seen)


def _read_level(
    source: Document, remap: RemapTable, first: Optional[PdfObject], seen: Set[ObjectId]
) -> List[OutlineItem]:
    items: List[OutlineItem] = []
    current = first
    while isinstance(current, IndirectObject):
        object_id = ObjectId.of(current)
        if object_id in seen:
            LOGGER.warning("Outline cycle at %s in %s", object_id, source.path)
            break
        seen.add(object_id)
        node = source.get(object_id)
        if not isinstance(node, DictionaryObject):
            break

        children = _read_level(source, remap, raw_entry(node, "/First"), seen)
        destination = _destination_array(source, node)
        page = remap.get(ObjectId.of(destination[0])) if destination is not None else None
        if page is None:
            items.extend(children)
        else:
            title = source.resolve(raw_entry(node, "/Title"))
            if not isinstance(title, (TextStringObject, ByteStringObject)):
                title = TextStringObject("")
            view = tuple(
                NullObject() if isinstance(part, IndirectObject) else part
                for part in destination[1:]
            )
            items.append(OutlineItem(title, page, view or (NameObject("/Fit"),), children))
        current = raw_entry(node, "/Next")
    return items


def write_outline(destination: Document, items: List[OutlineItem]) -> Optional[ObjectId]:
    """Insert an outline tree for *items*; return the ``/Outlines`` root id."""

    if not items:
        return None
    root_id = destination.allocate_id()
    root = DictionaryObject()
    root[NameObject("/Type")] = NameObject("/Outlines")
    first, last = _write_level(destination, items, root_id)
    root[NameObject("/First")] = first.reference()
    root[NameObject("/Last")] = last.reference()
    root[NameObject("/Count")] = NumberObject(count_items(items))
    destination.insert(root_id, root)
    return root_id


def _write_level(
    destination: Document, items: List[OutlineItem], parent_id: ObjectId
) -> Tuple[ObjectId, ObjectId]:
    ids = [destination.allocate_id() for _ in items]
    for index, (item, item_id) in enumerate(zip(items, ids)):
        node = DictionaryObject()
        node[NameObject("/Title")] = item.title
        node[NameObject("/Parent")] = parent_id.reference()
        node[NameObject("/Dest")] = ArrayObject([item.page.reference(), *item.view])
        if index > 0:
            node[NameObject("/Prev")] = ids[index - 1].reference()
        if index < len(ids) - 1:
            node[NameObject("/Next")] = ids[index + 1].reference()
        if item.children:
            first, last = _write_level(destination, item.children, item_id)
            node[NameObject("/First")] = first.reference()
            node[NameObject("/Last")] = last.reference()
            node[NameObject("/Count")] = NumberObject(item.total - 1)
        destination.insert(item_id, node)
    return ids[0], ids[-1]


def count_items(items: List[OutlineItem]) -> int:
    return sum(item.total for item in items)


__all__ = ["OutlineItem", "count_items", "read_outline", "write_outline"]
