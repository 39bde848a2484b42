"""Utilities shared by pdfgraft modules."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, Iterable, Optional, Union

PathLike = Union[str, Path]

LOGGER = logging.getLogger("pdfgraft.core")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(
    name: str,
    *,
    level: Optional[Union[int, str]] = None,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """Return ``name``'s logger with a stream handler attached once.

    Library modules use plain :func:`logging.getLogger`; this helper is meant
    for entry points (CLI, command loop) that own the process output.
    """

    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    if level is not None:
        logger.setLevel(level.upper() if isinstance(level, str) else level)
    return logger


def resolve_path(path: Optional[PathLike]) -> Path:
    if path is None:
        raise ValueError("Path must not be None")
    return Path(path).expanduser().resolve()


def discard_outputs(paths: Iterable[Path]) -> None:
    """Remove partially written outputs after a failed operation."""

    for path in paths:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            LOGGER.warning("Failed to remove partial output %s: %s", path, exc)
        else:
            LOGGER.debug("Removed partial output %s", path)


def format_file_size(size_bytes: float) -> str:
    """Format ``size_bytes`` as a human readable string (``"1.5 KB"``)."""

    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} PB"


__all__ = [
    "PathLike",
    "LOG_FORMAT",
    "discard_outputs",
    "format_file_size",
    "get_logger",
    "resolve_path",
]
