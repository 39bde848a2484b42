"""Split functionality for the :mod:`pdfgraft.split` package."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Optional, Tuple

from ..core.assembler import DocumentAssembler
from ..core.copier import ObjectGraphCopier
from ..core.document import Document, ObjectId, load_document
from ..core.utils import PathLike, discard_outputs
from ..exceptions import PageNotFoundError, ProcessingFailedError, ValidationError
from ..ranges import PageRange, PageRangeParser, RangeInput
from ..settings import SplitConfig
from ..types import RangeStat, SplitRequest, SplitResult

LOGGER = logging.getLogger("pdfgraft.split")


def _prepare_output_dir(output_dir: Path, create: bool) -> None:
    if output_dir.is_dir():
        return
    if output_dir.exists():
        raise ValidationError(f"Output path is not a directory: {output_dir}")
    if not create:
        raise ValidationError(f"Output directory does not exist: {output_dir}")
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ProcessingFailedError(f"unable to create {output_dir}: {exc}") from exc
    LOGGER.debug("Created output directory %s", output_dir)


class PdfSplitter:
    """Write one output document per page range of a source document."""

    def split(self, request: SplitRequest) -> SplitResult:
        """Run *request* and return per-range statistics.

        The source is loaded once. Ranges are checked against its page count
        before anything is written; if any range fails later, every output
        already written by this call is removed before the error propagates.
        """

        started = time.perf_counter()
        config = request.config
        source = load_document(request.file)
        source_pages = source.page_ids()
        PageRangeParser.validate_bounds(request.ranges, len(source_pages))

        output_paths = request.output_paths()
        _prepare_output_dir(request.output_dir, config.create_output_dir)
        LOGGER.info(
            "Splitting %s (%d pages) into %d file(s) in %s",
            request.file,
            len(source_pages),
            len(request.ranges),
            request.output_dir,
        )

        attempted: List[Path] = []
        stats: List[RangeStat] = []
        metadata_preserved = False
        try:
            for page_range, output_path in zip(request.ranges, output_paths):
                attempted.append(output_path)
                file_size, has_info = self._write_range(
                    source, source_pages, page_range, output_path, config
                )
                metadata_preserved = metadata_preserved or has_info
                stats.append(RangeStat(page_range, output_path, file_size, page_range.page_count))
                LOGGER.debug("Wrote pages %s to %s", page_range, output_path)
        except Exception:
            discard_outputs(attempted)
            raise

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        LOGGER.info("Split %s into %d file(s)", request.file, len(stats))
        return SplitResult(
            output_files=[stat.output_file for stat in stats],
            total_pages_processed=sum(stat.page_count for stat in stats),
            total_output_size=sum(stat.file_size for stat in stats),
            processing_time_ms=elapsed_ms,
            metadata_preserved=metadata_preserved,
            range_stats=stats,
        )

    def _write_range(
        self,
        source: Document,
        source_pages: List[ObjectId],
        page_range: PageRange,
        output_path: Path,
        config: SplitConfig,
    ) -> Tuple[int, bool]:
        destination = Document(version=config.pdf_version)
        page_ids: List[ObjectId] = []
        info_id: Optional[ObjectId] = None
        with ObjectGraphCopier(source, destination) as copier:
            for number in page_range.pages():
                if number > len(source_pages):
                    raise PageNotFoundError(source.path, number)
                page_ids.append(copier.copy_page(source_pages[number - 1], number))
            if config.preserve_metadata:
                info_id = copier.copy_info()

        assembler = DocumentAssembler(destination)
        assembler.build(page_ids, info=info_id)
        return assembler.save(output_path), info_id is not None


def split_pdf(
    input: PathLike,
    output_dir: PathLike,
    ranges: RangeInput,
    *,
    config: Optional[SplitConfig] = None,
) -> SplitResult:
    """Split *input* into one file per range in *output_dir*.

    Args:
        input: Source PDF path.
        output_dir: Directory for the generated files.
        ranges: ``"1-3,5"`` style text or a list of ``[start, end]`` pairs
            and single page numbers.
        config: Split options; environment defaults when omitted.

    Raises:
        InvalidPageRangeError: If a range is malformed, overlaps another or
            lies beyond the last page.
        PdfFileNotFoundError: If *input* does not exist.
        CorruptedPdfError: If *input* cannot be parsed.
        ProcessingFailedError: If an output cannot be written.
    """

    request = SplitRequest.create(input, ranges, output_dir, config=config)
    return PdfSplitter().split(request)


__all__ = ["PdfSplitter", "split_pdf"]
