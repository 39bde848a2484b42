"""Build the page tree and catalog around copied pages and write the file."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from pypdf.generic import (
    ArrayObject,
    DecodedStreamObject,
    DictionaryObject,
    NameObject,
    NumberObject,
)

from ..exceptions import ProcessingFailedError
from .document import Document, ObjectId
from .utils import PathLike

LOGGER = logging.getLogger("pdfgraft.core")

# High-bit comment marks the file as binary for transfer tools.
BINARY_MARKER = b"%\xe2\xe3\xcf\xd3\n"
FREE_ENTRY = b"0000000000 65535 f \n"


class DocumentAssembler:
    """Finish a destination :class:`Document` whose pages are already copied.

    :meth:`build` adds the ``/Pages`` node and the ``/Catalog`` and points the
    trailer at them; :meth:`optimize` optionally drops unreachable objects and
    compresses streams; :meth:`save` serializes with a classic cross-reference
    table.
    """

    def __init__(self, document: Document) -> None:
        self.document = document
        self.pages_id: Optional[ObjectId] = None
        self.catalog_id: Optional[ObjectId] = None

    def build(
        self,
        page_ids: Sequence[ObjectId],
        *,
        info: Optional[ObjectId] = None,
        outline: Optional[ObjectId] = None,
    ) -> ObjectId:
        """Attach *page_ids* (in order) to a new page tree and return the catalog id."""

        document = self.document
        pages_id = document.allocate_id()
        kids = ArrayObject()
        for page_id in page_ids:
            page = document.get(page_id)
            if not isinstance(page, DictionaryObject):
                raise ProcessingFailedError(f"page object {page_id} is missing from the output")
            page[NameObject("/Parent")] = pages_id.reference()
            kids.append(page_id.reference())

        pages = DictionaryObject()
        pages[NameObject("/Type")] = NameObject("/Pages")
        pages[NameObject("/Kids")] = kids
        pages[NameObject("/Count")] = NumberObject(len(kids))
        document.insert(pages_id, pages)

        catalog = DictionaryObject()
        catalog[NameObject("/Type")] = NameObject("/Catalog")
        catalog[NameObject("/Pages")] = pages_id.reference()
        if outline is not None:
            catalog[NameObject("/Outlines")] = outline.reference()
            catalog[NameObject("/PageMode")] = NameObject("/UseOutlines")
        catalog_id = document.add_object(catalog)

        document.trailer[NameObject("/Root")] = catalog_id.reference()
        if info is not None:
            document.trailer[NameObject("/Info")] = info.reference()

        self.pages_id = pages_id
        self.catalog_id = catalog_id
        LOGGER.debug("Assembled page tree with %d page(s)", len(kids))
        return catalog_id

    def optimize(self, compression_level: int) -> Tuple[int, int]:
        """Prune unreachable objects and Flate-compress unfiltered streams.

        Returns ``(objects_removed, streams_compressed)``.
        """

        objects = self.document.objects
        reachable = self.document.reachable_ids()
        unreachable = [object_id for object_id in objects if object_id not in reachable]
        for object_id in unreachable:
            del objects[object_id]

        compressed = 0
        for object_id, value in list(objects.items()):
            if not isinstance(value, DecodedStreamObject) or "/Filter" in value:
                continue
            packed = value.flate_encode(compression_level)
            if len(packed._data) >= len(value.get_data()):
                continue
            objects[object_id] = packed
            compressed += 1

        LOGGER.debug(
            "Optimized output: removed %d unreachable object(s), compressed %d stream(s)",
            len(unreachable),
            compressed,
        )
        return len(unreachable), compressed

    def serialize(self) -> bytes:
        """Return the document as PDF bytes."""

        document = self.document
        buffer = io.BytesIO()
        buffer.write(f"%PDF-{document.version}\n".encode("ascii"))
        buffer.write(BINARY_MARKER)

        offsets: Dict[int, Tuple[int, int]] = {}
        for object_id in sorted(document.objects):
            offsets[object_id.number] = (buffer.tell(), object_id.generation)
            buffer.write(f"{object_id.number} {object_id.generation} obj\n".encode("ascii"))
            document.objects[object_id].write_to_stream(buffer)
            buffer.write(b"\nendobj\n")

        size = max(offsets, default=0) + 1
        xref_offset = buffer.tell()
        buffer.write(f"xref\n0 {size}\n".encode("ascii"))
        for number in range(size):
            entry = offsets.get(number)
            if entry is None:
                buffer.write(FREE_ENTRY)
            else:
                offset, generation = entry
                buffer.write(f"{offset:010d} {generation:05d} n \n".encode("ascii"))

        trailer = DictionaryObject()
        for key, value in document.trailer.items():
            if key in ("/Encrypt", "/Prev", "/XRefStm", "/Size"):
                continue
            trailer[NameObject(key)] = value
        trailer[NameObject("/Size")] = NumberObject(size)
        buffer.write(b"trailer\n")
        trailer.write_to_stream(buffer)
        buffer.write(f"\nstartxref\n{xref_offset}\n%%EOF\n".encode("ascii"))
        return buffer.getvalue()

    def save(self, path: PathLike) -> int:
        """Write the document to *path* and return the number of bytes written."""

        output_path = Path(path)
        try:
            data = self.serialize()
        except Exception as exc:  # pypdf raises a variety of serialization errors
            LOGGER.error("Failed to serialize %s: %s", output_path, exc)
            raise ProcessingFailedError(f"unable to serialize {output_path}: {exc}") from exc

        try:
            output_path.write_bytes(data)
        except OSError as exc:
            LOGGER.error("Failed to write %s: %s", output_path, exc)
            raise ProcessingFailedError(f"unable to write {output_path}: {exc}") from exc

        LOGGER.debug("Wrote %d bytes to %s", len(data), output_path)
        return len(data)


def assemble(
    document: Document,
    page_ids: List[ObjectId],
    output_path: PathLike,
    *,
    info: Optional[ObjectId] = None,
    outline: Optional[ObjectId] = None,
    compression_level: Optional[int] = None,
) -> int:
    """Build, optionally optimize and save *document*; return the byte count."""

    assembler = DocumentAssembler(document)
    assembler.build(page_ids, info=info, outline=outline)
    if compression_level is not None:
        assembler.optimize(compression_level)
    return assembler.save(output_path)


__all__ = ["DocumentAssembler", "assemble"]
