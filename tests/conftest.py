from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional
import sys

import pytest
from pypdf import PdfReader, PdfWriter
from pypdf.generic import (
    ArrayObject,
    DecodedStreamObject,
    DictionaryObject,
    NameObject,
    NumberObject,
    TextStringObject,
)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pdfgraft.core.assembler import DocumentAssembler  # noqa: E402
from pdfgraft.core.document import Document, ObjectId  # noqa: E402

PdfFactory = Callable[..., Path]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("PDFGRAFT_PDF_VERSION", "PDFGRAFT_PRESERVE_METADATA", "PDFGRAFT_COMPRESSION_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def _page_widths(path: Path) -> list[int]:
    reader = PdfReader(str(path))
    return [int(float(page.mediabox.width)) for page in reader.pages]


@pytest.fixture()
def page_widths() -> Callable[[Path], list[int]]:
    """Read back page widths; the factories encode page identity in them."""

    return _page_widths


@pytest.fixture()
def pdf_factory(tmp_path: Path) -> PdfFactory:
    def _create(
        filename: str,
        pages: int = 1,
        *,
        first_width: int = 100,
        title: Optional[str] = None,
        metadata: Optional[dict[str, str]] = None,
        bookmarks: bool = False,
        user_password: Optional[str] = None,
    ) -> Path:
        path = tmp_path / filename
        writer = PdfWriter()
        for index in range(pages):
            writer.add_blank_page(width=first_width + index, height=200)
        info = dict(metadata or {})
        if title is not None:
            info["/Title"] = title
        if info:
            writer.add_metadata(info)
        if bookmarks:
            for index in range(pages):
                writer.add_outline_item(f"Page {index + 1}", index)
        if user_password is not None:
            writer.encrypt(user_password, "owner-secret")
        with path.open("wb") as handle:
            writer.write(handle)
        return path

    return _create


@pytest.fixture()
def sample_pdf(pdf_factory: PdfFactory) -> Path:
    return pdf_factory("sample.pdf", pages=10, title="Sample")


@pytest.fixture()
def sample_pdfs(pdf_factory: PdfFactory) -> list[Path]:
    pdf1 = pdf_factory("one.pdf", pages=3, first_width=100, title="Document One")
    pdf2 = pdf_factory("two.pdf", pages=5, first_width=200)
    return [pdf1, pdf2]


def build_shared_font_document(page_count: int = 3, *, inherit_resources: bool = True) -> Document:
    """Build a document whose pages share one font through their resources.

    Page ``n`` has width ``600 + n`` and its first page carries a link
    annotation pointing at the last page.
    """

    document = Document(version="1.7")
    font = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Font"),
            NameObject("/Subtype"): NameObject("/Type1"),
            NameObject("/BaseFont"): NameObject("/Helvetica"),
        }
    )
    font_id = document.add_object(font)
    resources = DictionaryObject(
        {NameObject("/Font"): DictionaryObject({NameObject("/F1"): font_id.reference()})}
    )
    resources_id = document.add_object(resources)

    page_ids: list[ObjectId] = []
    for number in range(1, page_count + 1):
        content = DecodedStreamObject()
        content.set_data(f"BT /F1 12 Tf 72 720 Td (Page {number}) Tj ET".encode("ascii"))
        page = DictionaryObject(
            {
                NameObject("/Type"): NameObject("/Page"),
                NameObject("/MediaBox"): ArrayObject(
                    [NumberObject(0), NumberObject(0), NumberObject(600 + number), NumberObject(792)]
                ),
                NameObject("/Contents"): document.add_object(content).reference(),
            }
        )
        if not inherit_resources:
            page[NameObject("/Resources")] = resources_id.reference()
        page_ids.append(document.add_object(page))

    link = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Annot"),
            NameObject("/Subtype"): NameObject("/Link"),
            NameObject("/Rect"): ArrayObject([NumberObject(0), NumberObject(0), NumberObject(10), NumberObject(10)]),
            NameObject("/Dest"): ArrayObject([page_ids[-1].reference(), NameObject("/Fit")]),
            NameObject("/P"): page_ids[0].reference(),
        }
    )
    link_id = document.add_object(link)
    document.objects[page_ids[0]][NameObject("/Annots")] = ArrayObject([link_id.reference()])

    info = DictionaryObject({NameObject("/Title"): TextStringObject("Shared Font")})
    assembler = DocumentAssembler(document)
    assembler.build(page_ids, info=document.add_object(info))
    if inherit_resources:
        document.objects[assembler.pages_id][NameObject("/Resources")] = resources_id.reference()
    return document


@pytest.fixture()
def shared_font_document() -> Document:
    return build_shared_font_document()


@pytest.fixture()
def shared_font_pdf(tmp_path: Path) -> Path:
    path = tmp_path / "shared_font.pdf"
    DocumentAssembler(build_shared_font_document()).save(path)
    return path
