from __future__ import annotations

from pathlib import Path

import pytest
from pypdf import PdfReader
from pypdf.generic import DecodedStreamObject, DictionaryObject, EncodedStreamObject, NameObject, NumberObject

from pdfgraft.core.assembler import DocumentAssembler, assemble
from pdfgraft.core.copier import ObjectGraphCopier
from pdfgraft.core.document import Document, ObjectId, load_document, raw_entry
from pdfgraft.exceptions import ProcessingFailedError


def _copy_all_pages(source: Document) -> tuple[Document, list[ObjectId], ObjectId | None]:
    destination = Document(version="1.5")
    with ObjectGraphCopier(source, destination) as copier:
        page_ids = [copier.copy_page(page_id, number) for number, page_id in enumerate(source.page_ids(), start=1)]
        info_id = copier.copy_info()
    return destination, page_ids, info_id


def test_build_creates_page_tree_and_catalog(shared_font_document: Document) -> None:
    destination, page_ids, info_id = _copy_all_pages(shared_font_document)
    assembler = DocumentAssembler(destination)

    catalog_id = assembler.build(list(reversed(page_ids)), info=info_id)

    assert destination.catalog() is destination.objects[catalog_id]
    pages = destination.objects[assembler.pages_id]
    assert raw_entry(pages, "/Count") == 3
    assert destination.page_ids() == list(reversed(page_ids))
    for page_id in page_ids:
        assert ObjectId.of(raw_entry(destination.objects[page_id], "/Parent")) == assembler.pages_id
    assert ObjectId.of(raw_entry(destination.trailer, "/Info")) == info_id
    assert destination.dangling_references() == []


def test_build_rejects_unknown_pages() -> None:
    with pytest.raises(ProcessingFailedError):
        DocumentAssembler(Document()).build([ObjectId(5, 0)])


def test_saved_file_is_readable(tmp_path: Path, shared_font_document: Document) -> None:
    destination, page_ids, info_id = _copy_all_pages(shared_font_document)
    output = tmp_path / "out.pdf"

    size = assemble(destination, page_ids, output, info=info_id)

    data = output.read_bytes()
    assert size == len(data)
    assert data.startswith(b"%PDF-1.5\n")
    assert data.rstrip().endswith(b"%%EOF")
    reader = PdfReader(str(output))
    assert len(reader.pages) == 3
    assert [int(float(page.mediabox.width)) for page in reader.pages] == [601, 602, 603]
    assert reader.metadata.title == "Shared Font"
    assert "Page 2" in reader.pages[1].extract_text()


def test_serialized_output_round_trips_through_loader(tmp_path: Path, shared_font_document: Document) -> None:
    destination, page_ids, _ = _copy_all_pages(shared_font_document)
    output = tmp_path / "round_trip.pdf"
    assemble(destination, page_ids, output)

    loaded = load_document(output)

    assert loaded.page_count == 3
    assert loaded.version == "1.5"
    assert loaded.dangling_references() == []


def test_optimize_prunes_and_compresses(shared_font_document: Document) -> None:
    destination, page_ids, _ = _copy_all_pages(shared_font_document)
    orphan = destination.add_object(DictionaryObject({NameObject("/Orphan"): NumberObject(1)}))
    big_stream = DecodedStreamObject()
    big_stream.set_data(b"0 0 m 10 10 l S\n" * 200)
    destination.objects[page_ids[0]][NameObject("/Contents")] = destination.add_object(big_stream).reference()
    assembler = DocumentAssembler(destination)
    assembler.build(page_ids)

    removed, compressed = assembler.optimize(9)

    assert removed >= 1
    assert orphan not in destination.objects
    assert compressed >= 1
    contents = destination.resolve(raw_entry(destination.objects[page_ids[0]], "/Contents"))
    assert isinstance(contents, EncodedStreamObject)
    assert raw_entry(contents, "/Filter") == "/FlateDecode"
    assert len(contents._data) < len(b"0 0 m 10 10 l S\n" * 200)
    assert contents.get_data() == b"0 0 m 10 10 l S\n" * 200


def test_optimize_keeps_streams_that_do_not_shrink(shared_font_document: Document) -> None:
    destination, page_ids, _ = _copy_all_pages(shared_font_document)
    tiny = DecodedStreamObject()
    tiny.set_data(b"q Q")
    destination.objects[page_ids[1]][NameObject("/Contents")] = destination.add_object(tiny).reference()
    assembler = DocumentAssembler(destination)
    assembler.build(page_ids)

    assembler.optimize(6)

    contents = destination.resolve(raw_entry(destination.objects[page_ids[1]], "/Contents"))
    assert isinstance(contents, DecodedStreamObject)
    assert "/Filter" not in contents
    assert contents.get_data() == b"q Q"


def test_save_wraps_io_errors(tmp_path: Path, shared_font_document: Document) -> None:
    destination, page_ids, _ = _copy_all_pages(shared_font_document)
    assembler = DocumentAssembler(destination)
    assembler.build(page_ids)

    with pytest.raises(ProcessingFailedError):
        assembler.save(tmp_path / "missing-dir" / "out.pdf")
