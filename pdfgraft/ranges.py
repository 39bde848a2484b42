"""Parsing and validation of page page range expressions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Union

from .exceptions import InvalidPageRangeError

RangeInput = Union[str, Sequence[object]]

_TOKEN_RE = re.compile(r"^\s*(\d+)\s*(?:-\s*(\d+)\s*)?$", re.ASCII)


@dataclass(frozen=True)
class PageRange:
    """An inclusive, 1-indexed page range."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 1 or self.end < 1:
            raise InvalidPageRangeError(f"page numbers must be at least 1 ({self.start}-{self.end})")
        if self.end < self.start:
            raise InvalidPageRangeError(f"end before start in {self.start}-{self.end}")

    @classmethod
    def single(cls, page: int) -> "PageRange":
        return cls(page, page)

    @property
    def page_count(self) -> int:
        return self.end - self.start + 1

    def pages(self) -> range:
        return range(self.start, self.end + 1)

    def label(self) -> str:
        """Return ``"N"`` for a single page and ``"N-M"`` otherwise."""

        if self.start == self.end:
            return str(self.start)
        return f"{self.start}-{self.end}"

    def __str__(self) -> str:
        return self.label()


def _parse_token(token: str) -> PageRange:
    match = _TOKEN_RE.match(token)
    if match is None:
        raise InvalidPageRangeError(f"malformed token {token.strip()!r}")
    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) is not None else start
    return PageRange(start, end)


def _check_page_number(value: object, source: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidPageRangeError(f"page numbers must be integers, got {value!r} in {source!r}")
    return value


def _ranges_from_items(items: Sequence[object]) -> Iterator[PageRange]:
    for item in items:
        if isinstance(item, str):
            yield from _ranges_from_text(item)
        elif isinstance(item, (list, tuple)):
            if len(item) != 2:
                raise InvalidPageRangeError(f"range pairs need exactly two numbers, got {item!r}")
            start = _check_page_number(item[0], item)
            end = _check_page_number(item[1], item)
            yield PageRange(start, end)
        else:
            yield PageRange.single(_check_page_number(item, item))


def _ranges_from_text(text: str) -> Iterator[PageRange]:
    for token in text.split(","):
        if token.strip():
            yield _parse_token(token)


class PageRangeParser:
    """Turn page range expressions into validated :class:`PageRange` lists."""

    @classmethod
    def parse(cls, value: Optional[RangeInput]) -> List[PageRange]:
        """Parse *value* and reject empty or overlapping results.

        *value* is either text such as ``"1-3,5,7-10"`` or a sequence mixing
        ``[start, end]`` pairs, single integers and text tokens. The result
        keeps the order in which ranges were given.
        """

        if isinstance(value, str):
            ranges = list(_ranges_from_text(value))
        elif isinstance(value, (list, tuple)):
            ranges = list(_ranges_from_items(value))
        else:
            raise InvalidPageRangeError(f"unsupported page ranges {value!r}")

        if not ranges:
            raise InvalidPageRangeError("no page ranges given")
        cls.check_overlaps(ranges)
        return ranges

    @staticmethod
    def check_overlaps(ranges: Iterable[PageRange]) -> None:
        ordered = sorted(ranges, key=lambda page_range: (page_range.start, page_range.end))
        for current, following in zip(ordered, ordered[1:]):
            if current.end >= following.start:
                raise InvalidPageRangeError(f"ranges {current} and {following} overlap")

    @staticmethod
    def validate_bounds(ranges: Iterable[PageRange], total_pages: int) -> None:
        for page_range in ranges:
            if page_range.end > total_pages:
                raise InvalidPageRangeError(
                    f"range {page_range} exceeds the document's {total_pages} page(s)"
                )

    @staticmethod
    def expand(ranges: Iterable[PageRange]) -> List[int]:
        return [page for page_range in ranges for page in page_range.pages()]


def parse_page_ranges(value: Optional[RangeInput], *, total_pages: Optional[int] = None) -> List[PageRange]:
    """Parse *value*; when *total_pages* is given also check the upper bound."""

    ranges = PageRangeParser.parse(value)
    if total_pages is not None:
        PageRangeParser.validate_bounds(ranges, total_pages)
    return ranges


__all__ = ["PageRange", "PageRangeParser", "RangeInput", "parse_page_ranges"]
