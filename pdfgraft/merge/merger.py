"""Merge functionality for the :mod:`pdfgraft.merge` package."""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Sequence

from ..core.assembler import DocumentAssembler
from ..core.copier import ObjectGraphCopier
from ..core.document import Document, ObjectId, load_document
from ..core.outline import OutlineItem, count_items, read_outline, write_outline
from ..core.utils import PathLike, discard_outputs
from ..exceptions import PdfFileNotFoundError, ProcessingFailedError
from ..settings import MergeConfig
from ..types import MergeRequest, MergeResult

LOGGER = logging.getLogger("pdfgraft.merge")


class PdfMerger:
    """Concatenate the pages of several documents into one output file."""

    def merge(self, request: MergeRequest) -> MergeResult:
        """Run *request* and return statistics about the written file.

        Every input is checked for existence before any is parsed. Sources
        are loaded one at a time and released once their pages are copied.
        If anything fails the output file is removed and the error propagates.
        """

        started = time.perf_counter()
        config = request.config
        files = request.ordered_files()
        output_path = request.output_path
        LOGGER.info("Merging %d PDF(s) into %s", len(files), output_path)

        for path in files:
            if not path.is_file():
                raise PdfFileNotFoundError(path)

        destination = Document(version=config.pdf_version)
        page_ids: List[ObjectId] = []
        outline_items: List[OutlineItem] = []
        info_id: Optional[ObjectId] = None

        for index, path in enumerate(files):
            LOGGER.debug("Processing input PDF %s", path)
            source = load_document(path)
            source_pages = source.page_ids()
            if not source_pages:
                LOGGER.warning("Input PDF %s contains no pages", path)
            with ObjectGraphCopier(source, destination) as copier:
                for number, page_id in enumerate(source_pages, start=1):
                    page_ids.append(copier.copy_page(page_id, number))
                if index == 0 and config.preserve_metadata:
                    info_id = copier.copy_info()
            if config.keep_bookmarks:
                outline_items.extend(read_outline(source, copier.remap))
            LOGGER.debug(
                "Copied %d object(s) from %s (%d page(s) so far)",
                copier.copied_objects,
                path,
                len(page_ids),
            )

        outline_id = write_outline(destination, outline_items)
        assembler = DocumentAssembler(destination)
        assembler.build(page_ids, info=info_id, outline=outline_id)
        if config.optimize_size:
            assembler.optimize(config.compression_level)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ProcessingFailedError(f"unable to create {output_path.parent}: {exc}") from exc
        try:
            file_size = assembler.save(output_path)
        except Exception:
            discard_outputs([output_path])
            raise

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        LOGGER.info("Merged %d PDF(s) into %s (%d pages)", len(files), output_path, len(page_ids))
        return MergeResult(
            output_path=output_path,
            total_pages=len(page_ids),
            file_size=file_size,
            processing_time_ms=elapsed_ms,
            files_merged=len(files),
            metadata_preserved=info_id is not None,
            bookmarks_copied=count_items(outline_items),
        )


def merge_pdfs(
    inputs: Sequence[PathLike],
    output: PathLike,
    *,
    page_order: Optional[Sequence[int]] = None,
    config: Optional[MergeConfig] = None,
) -> MergeResult:
    """Merge *inputs* into *output* and return the result.

    Args:
        inputs: Paths of the PDFs to merge.
        output: The output file path that will contain the merged PDF.
        page_order: Optional permutation of ``inputs`` indices giving the
            order in which the files are concatenated.
        config: Merge options; environment defaults when omitted.

    Raises:
        ValidationError: If no inputs are given or ``page_order`` is invalid.
        PdfFileNotFoundError: If an input does not exist.
        CorruptedPdfError: If an input cannot be parsed.
        ProcessingFailedError: If the output cannot be written.
    """

    request = MergeRequest.create(inputs, output, page_order=page_order, config=config)
    return PdfMerger().merge(request)


__all__ = ["PdfMerger", "merge_pdfs"]
