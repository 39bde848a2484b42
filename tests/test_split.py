from __future__ import annotations

from pathlib import Path
from typing import Callable, List

import pytest
from pypdf import PdfReader

from pdfgraft import (
    InvalidPageRangeError,
    PdfFileNotFoundError,
    PdfSplitter,
    SplitConfig,
    SplitRequest,
    ValidationError,
    merge_pdfs,
    split_document,
    split_pdf,
)
from pdfgraft.core.assembler import DocumentAssembler
from pdfgraft.core.document import load_document
from pdfgraft.exceptions import ProcessingFailedError

Widths = Callable[[Path], List[int]]


def test_split_pdf_by_ranges(tmp_path: Path, sample_pdf: Path, page_widths: Widths) -> None:
    output_dir = tmp_path / "parts"

    result = split_pdf(sample_pdf, output_dir, "1-3,5,7-10")

    assert result.files_created == 3
    assert result.total_pages_processed == 8
    assert [path.name for path in result.output_files] == ["split_1.pdf", "split_2.pdf", "split_3.pdf"]
    assert [stat.page_count for stat in result.range_stats] == [3, 1, 4]
    assert page_widths(result.output_files[0]) == [100, 101, 102]
    assert page_widths(result.output_files[1]) == [104]
    assert page_widths(result.output_files[2]) == [106, 107, 108, 109]
    assert result.total_output_size == sum(path.stat().st_size for path in result.output_files)


def test_split_range_beyond_last_page(tmp_path: Path, sample_pdf: Path) -> None:
    output_dir = tmp_path / "parts"

    with pytest.raises(InvalidPageRangeError):
        split_pdf(sample_pdf, output_dir, "11")
    assert not output_dir.exists()


def test_split_whole_document(tmp_path: Path, sample_pdf: Path, page_widths: Widths) -> None:
    result = split_pdf(sample_pdf, tmp_path, "1-10")

    assert result.files_created == 1
    assert page_widths(result.output_files[0]) == list(range(100, 110))


def test_split_then_merge_restores_page_order(
    tmp_path: Path, sample_pdf: Path, page_widths: Widths
) -> None:
    parts = split_pdf(sample_pdf, tmp_path / "parts", "1-4,5,6-10")
    output = tmp_path / "rejoined.pdf"

    merge_pdfs(parts.output_files, output)

    assert page_widths(output) == page_widths(sample_pdf)


def test_split_outputs_have_no_dangling_references(tmp_path: Path, shared_font_pdf: Path) -> None:
    result = split_pdf(shared_font_pdf, tmp_path, [1, [2, 3]])

    for path in result.output_files:
        document = load_document(path)
        assert document.dangling_references() == []
    assert "Page 3" in PdfReader(str(result.output_files[1])).pages[1].extract_text()


def test_split_preserves_metadata(tmp_path: Path, sample_pdf: Path) -> None:
    result = split_pdf(sample_pdf, tmp_path, "1,2")

    assert result.metadata_preserved
    for path in result.output_files:
        assert PdfReader(str(path)).metadata.title == "Sample"


def test_split_without_metadata(tmp_path: Path, sample_pdf: Path) -> None:
    result = split_pdf(sample_pdf, tmp_path, "1", config=SplitConfig(preserve_metadata=False))

    assert not result.metadata_preserved
    assert PdfReader(str(result.output_files[0])).metadata is None


def test_split_naming_pattern(tmp_path: Path, sample_pdf: Path) -> None:
    config = SplitConfig(naming_pattern="chapter_{range}")

    result = split_pdf(sample_pdf, tmp_path, "1-2,3", config=config)

    assert [path.name for path in result.output_files] == ["chapter_1-2.pdf", "chapter_3.pdf"]


@pytest.mark.parametrize("pattern", ["same", "{unknown}", "../{index}"])
def test_split_rejects_bad_naming_patterns(tmp_path: Path, sample_pdf: Path, pattern: str) -> None:
    with pytest.raises(ValidationError):
        split_pdf(sample_pdf, tmp_path, "1,2", config=SplitConfig(naming_pattern=pattern))
    assert list(tmp_path.glob("*.pdf")) == [sample_pdf]


def test_split_requires_existing_dir_when_not_creating(tmp_path: Path, sample_pdf: Path) -> None:
    config = SplitConfig(create_output_dir=False)

    with pytest.raises(ValidationError):
        split_pdf(sample_pdf, tmp_path / "absent", "1", config=config)


def test_split_overlapping_ranges(tmp_path: Path, sample_pdf: Path) -> None:
    with pytest.raises(InvalidPageRangeError):
        split_pdf(sample_pdf, tmp_path, "1-5,5-6")


def test_split_missing_input(tmp_path: Path) -> None:
    with pytest.raises(PdfFileNotFoundError):
        split_pdf(tmp_path / "missing.pdf", tmp_path / "parts", "1")


@pytest.mark.parametrize("error", [ProcessingFailedError("disk full"), RuntimeError("encoder crashed")])
def test_split_failure_removes_written_outputs(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, sample_pdf: Path, error: Exception
) -> None:
    original_save = DocumentAssembler.save
    calls: List[Path] = []

    def flaky_save(self: DocumentAssembler, path: Path) -> int:
        calls.append(path)
        if len(calls) == 2:
            raise error
        return original_save(self, path)

    monkeypatch.setattr(DocumentAssembler, "save", flaky_save)
    output_dir = tmp_path / "parts"

    with pytest.raises(type(error)):
        split_pdf(sample_pdf, output_dir, "1-2,3-4,5")
    assert len(calls) == 2
    assert list(output_dir.iterdir()) == []


def test_splitter_accepts_request_objects(tmp_path: Path, sample_pdf: Path) -> None:
    request = SplitRequest.from_mapping(
        {"file": str(sample_pdf), "ranges": [[1, 2], 4], "output_dir": str(tmp_path / "out")}
    )

    result = PdfSplitter().split(request)

    data = result.to_dict()
    assert data["files_created"] == 2
    assert [stat["range"] for stat in data["range_stats"]] == ["1-2", "4"]


def test_split_document_helper(tmp_path: Path, sample_pdf: Path) -> None:
    result = split_document(sample_pdf, tmp_path / "out", "2-3")
    assert result.total_pages_processed == 2
