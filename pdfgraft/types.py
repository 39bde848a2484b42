"""
Request and result dataclasses for merge and split operations.

Requests validate their shape on construction so an invalid request never
reaches the processors. ``from_mapping`` builds a request from the JSON
objects accepted by the command loop; ``to_dict`` on results produces the
matching JSON-ready payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .core.utils import PathLike
from .exceptions import ValidationError
from .ranges import PageRange, PageRangeParser, RangeInput
from .settings import MergeConfig, SplitConfig

_NAMING_FIELDS = ("index", "range", "start", "end")
_PLACEHOLDERS = ", ".join("{" + name + "}" for name in _NAMING_FIELDS)


def _require(data: Mapping[str, Any], key: str) -> Any:
    if key not in data or data[key] is None:
        raise ValidationError(f"Missing required field: {key}")
    return data[key]


def _require_path(data: Mapping[str, Any], key: str) -> Path:
    value = _require(data, key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} must be a non-empty string")
    return Path(value)


def _check_mapping(data: object, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValidationError(f"{what} must be an object")
    return data


@dataclass(frozen=True)
class MergeRequest:
    """
    Files to merge into one output.

    Attributes:
        files: Input documents, in the order their pages are concatenated
        output_path: Destination file
        page_order: Optional permutation of ``files`` indices (0-based)
        config: Merge options
    """
    files: Tuple[Path, ...]
    output_path: Path
    page_order: Optional[Tuple[int, ...]] = None
    config: MergeConfig = field(default_factory=MergeConfig.from_env)

    def __post_init__(self) -> None:
        if not self.files:
            raise ValidationError("At least one input file is required for merging")
        if self.page_order is None:
            return
        order = self.page_order
        if any(isinstance(index, bool) or not isinstance(index, int) for index in order):
            raise ValidationError("page_order must contain integers")
        if len(order) != len(self.files):
            raise ValidationError(
                f"page_order has {len(order)} entries but {len(self.files)} files were given"
            )
        if len(set(order)) != len(order):
            raise ValidationError("page_order contains duplicate indices")
        for index in order:
            if index < 0 or index >= len(self.files):
                raise ValidationError(f"page_order index {index} is out of range")

    @classmethod
    def create(
        cls,
        files: Sequence[PathLike],
        output_path: PathLike,
        *,
        page_order: Optional[Sequence[int]] = None,
        config: Optional[MergeConfig] = None,
    ) -> "MergeRequest":
        return cls(
            files=tuple(Path(path) for path in files),
            output_path=Path(output_path),
            page_order=tuple(page_order) if page_order is not None else None,
            config=config if config is not None else MergeConfig.from_env(),
        )

    @classmethod
    def from_mapping(cls, data: object) -> "MergeRequest":
        data = _check_mapping(data, "merge request")
        files = _require(data, "files")
        if not isinstance(files, list) or not all(isinstance(item, str) for item in files):
            raise ValidationError("files must be a list of paths")
        page_order = data.get("page_order")
        if page_order is not None and not isinstance(page_order, list):
            raise ValidationError("page_order must be a list of integers")
        return cls.create(
            files,
            _require_path(data, "output"),
            page_order=page_order,
            config=MergeConfig.from_mapping(data.get("config")),
        )

    def ordered_files(self) -> List[Path]:
        if self.page_order is None:
            return list(self.files)
        return [self.files[index] for index in self.page_order]


@dataclass(frozen=True)
class SplitRequest:
    """
    One document to split into one output file per page range.

    Attributes:
        file: Source document
        ranges: Non-overlapping page ranges, in output order
        output_dir: Directory receiving the outputs
        config: Split options
    """
    file: Path
    ranges: Tuple[PageRange, ...]
    output_dir: Path
    config: SplitConfig = field(default_factory=SplitConfig.from_env)

    def __post_init__(self) -> None:
        if not self.ranges:
            raise ValidationError("At least one page range is required for splitting")
        PageRangeParser.check_overlaps(self.ranges)
        # Render every name once so a bad pattern fails before any I/O.
        names = [self.output_name(index) for index in range(len(self.ranges))]
        if len(set(names)) != len(names):
            raise ValidationError(
                f"naming_pattern {self.config.naming_pattern!r} produces duplicate file names"
            )

    @classmethod
    def create(
        cls,
        file: PathLike,
        ranges: RangeInput,
        output_dir: PathLike,
        *,
        config: Optional[SplitConfig] = None,
    ) -> "SplitRequest":
        return cls(
            file=Path(file),
            ranges=tuple(PageRangeParser.parse(ranges)),
            output_dir=Path(output_dir),
            config=config if config is not None else SplitConfig.from_env(),
        )

    @classmethod
    def from_mapping(cls, data: object) -> "SplitRequest":
        data = _check_mapping(data, "split request")
        return cls.create(
            _require_path(data, "file"),
            _require(data, "ranges"),
            _require_path(data, "output_dir"),
            config=SplitConfig.from_mapping(data.get("config")),
        )

    def output_name(self, index: int) -> str:
        """Render the file name of the output for ``ranges[index]``."""

        page_range = self.ranges[index]
        try:
            stem = self.config.naming_pattern.format(
                index=index + 1,
                range=page_range.label(),
                start=page_range.start,
                end=page_range.end,
            )
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
            raise ValidationError(
                f"naming_pattern may only use the {_PLACEHOLDERS} placeholders"
            ) from exc
        name = f"{stem}.pdf"
        if not stem.strip() or Path(name).name != name:
            raise ValidationError(f"naming_pattern renders an invalid file name: {name!r}")
        return name

    def output_paths(self) -> List[Path]:
        return [self.output_dir / self.output_name(index) for index in range(len(self.ranges))]


@dataclass
class MergeResult:
    """
    Result of a merge operation.

    Attributes:
        output_path: Written file
        total_pages: Pages in the output
        file_size: Output size in bytes
        processing_time_ms: Wall-clock duration
        files_merged: Number of input files
        metadata_preserved: Whether an Info dictionary was carried over
        bookmarks_copied: Outline items written to the output
    """
    output_path: Path
    total_pages: int
    file_size: int
    processing_time_ms: int
    files_merged: int
    metadata_preserved: bool
    bookmarks_copied: int = 0
    success: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "output_path": str(self.output_path),
            "total_pages": self.total_pages,
            "file_size": self.file_size,
            "processing_time_ms": self.processing_time_ms,
            "files_merged": self.files_merged,
            "metadata_preserved": self.metadata_preserved,
            "bookmarks_copied": self.bookmarks_copied,
        }

    def __str__(self) -> str:
        return f"MergeResult(files={self.files_merged}, pages={self.total_pages})"


@dataclass
class RangeStat:
    """Per-range outcome of a split."""

    range: PageRange
    output_file: Path
    file_size: int
    page_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "range": self.range.label(),
            "start": self.range.start,
            "end": self.range.end,
            "output_file": str(self.output_file),
            "file_size": self.file_size,
            "page_count": self.page_count,
        }


@dataclass
class SplitResult:
    """
    Result of a split operation.

    Attributes:
        output_files: Written files, one per range, in range order
        total_pages_processed: Sum of pages across all outputs
        total_output_size: Sum of output sizes in bytes
        processing_time_ms: Wall-clock duration
        metadata_preserved: Whether the Info dictionary was carried over
        range_stats: Per-range details
    """
    output_files: List[Path]
    total_pages_processed: int
    total_output_size: int
    processing_time_ms: int
    metadata_preserved: bool
    range_stats: List[RangeStat] = field(default_factory=list)
    success: bool = True

    @property
    def files_created(self) -> int:
        return len(self.output_files)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "output_files": [str(path) for path in self.output_files],
            "total_pages_processed": self.total_pages_processed,
            "total_output_size": self.total_output_size,
            "processing_time_ms": self.processing_time_ms,
            "files_created": self.files_created,
            "metadata_preserved": self.metadata_preserved,
            "range_stats": [stat.to_dict() for stat in self.range_stats],
        }

    def __str__(self) -> str:
        return f"SplitResult(files={self.files_created}, pages={self.total_pages_processed})"


__all__ = [
    "MergeRequest",
    "MergeResult",
    "RangeStat",
    "SplitRequest",
    "SplitResult",
]
