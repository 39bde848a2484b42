"""Processing options for merge and split requests.

Defaults can be overridden through the environment:

``PDFGRAFT_PDF_VERSION``
    Version written to output headers (``"1.5"`` when unset).
``PDFGRAFT_PRESERVE_METADATA``
    ``0``/``false``/``no``/``off`` disables copying the Info dictionary.
``PDFGRAFT_COMPRESSION_LEVEL``
    zlib level used when ``optimize_size`` is enabled.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Type, TypeVar

from .exceptions import ValidationError

LOGGER = logging.getLogger("pdfgraft.settings")

DEFAULT_PDF_VERSION = "1.5"
DEFAULT_COMPRESSION_LEVEL = 6
DEFAULT_NAMING_PATTERN = "split_{index}"

_FALSEY = {"0", "false", "no", "off"}
_VERSION_RE = re.compile(r"^\d\.\d$")

ConfigT = TypeVar("ConfigT", bound="_Config")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in _FALSEY


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Ignoring non-integer %s=%r", name, value)
        return default


def default_pdf_version() -> str:
    version = os.getenv("PDFGRAFT_PDF_VERSION", "").strip()
    if version and _VERSION_RE.match(version):
        return version
    if version:
        LOGGER.warning("Ignoring malformed PDFGRAFT_PDF_VERSION=%r", version)
    return DEFAULT_PDF_VERSION


def _check_version(version: str) -> None:
    if not isinstance(version, str) or not _VERSION_RE.match(version):
        raise ValidationError(f"pdf_version must look like '1.5', got {version!r}")


class _Config:
    @classmethod
    def from_env(cls: Type[ConfigT]) -> ConfigT:
        raise NotImplementedError

    @classmethod
    def from_mapping(cls: Type[ConfigT], data: Optional[Mapping[str, Any]]) -> ConfigT:
        """Build a config from environment defaults overridden by *data*.

        Unknown keys and values of the wrong type raise :class:`ValidationError`.
        """

        base = cls.from_env()
        if data is None:
            return base
        if not isinstance(data, Mapping):
            raise ValidationError("config must be an object")

        known = {item.name for item in dataclasses.fields(base)}
        overrides = {}
        for key, value in data.items():
            if key not in known:
                raise ValidationError(f"Unknown config option: {key}")
            expected = type(getattr(base, key))
            if type(value) is not expected:
                raise ValidationError(
                    f"config option {key} must be of type {expected.__name__}"
                )
            overrides[key] = value
        return dataclasses.replace(base, **overrides)

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class MergeConfig(_Config):
    preserve_metadata: bool = True
    optimize_size: bool = False
    keep_bookmarks: bool = True
    compression_level: int = DEFAULT_COMPRESSION_LEVEL
    pdf_version: str = DEFAULT_PDF_VERSION

    def __post_init__(self) -> None:
        if not 1 <= self.compression_level <= 9:
            raise ValidationError(
                f"compression_level must be between 1 and 9, got {self.compression_level}"
            )
        _check_version(self.pdf_version)

    @classmethod
    def from_env(cls) -> "MergeConfig":
        level = _env_int("PDFGRAFT_COMPRESSION_LEVEL", DEFAULT_COMPRESSION_LEVEL)
        if not 1 <= level <= 9:
            LOGGER.warning("Ignoring out-of-range PDFGRAFT_COMPRESSION_LEVEL=%d", level)
            level = DEFAULT_COMPRESSION_LEVEL
        return cls(
            preserve_metadata=_env_flag("PDFGRAFT_PRESERVE_METADATA", True),
            compression_level=level,
            pdf_version=default_pdf_version(),
        )


@dataclass(frozen=True)
class SplitConfig(_Config):
    preserve_metadata: bool = True
    naming_pattern: str = DEFAULT_NAMING_PATTERN
    create_output_dir: bool = True
    pdf_version: str = DEFAULT_PDF_VERSION

    def __post_init__(self) -> None:
        if not self.naming_pattern.strip():
            raise ValidationError("naming_pattern must not be empty")
        _check_version(self.pdf_version)

    @classmethod
    def from_env(cls) -> "SplitConfig":
        return cls(
            preserve_metadata=_env_flag("PDFGRAFT_PRESERVE_METADATA", True),
            pdf_version=default_pdf_version(),
        )


__all__ = [
    "DEFAULT_COMPRESSION_LEVEL",
    "DEFAULT_NAMING_PATTERN",
    "DEFAULT_PDF_VERSION",
    "MergeConfig",
    "SplitConfig",
    "default_pdf_version",
]
