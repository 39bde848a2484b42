from __future__ import annotations

import pytest

from pdfgraft.exceptions import ValidationError
from pdfgraft.settings import DEFAULT_PDF_VERSION, MergeConfig, SplitConfig, default_pdf_version


def test_defaults() -> None:
    merge = MergeConfig.from_env()
    split = SplitConfig.from_env()

    assert merge == MergeConfig()
    assert merge.pdf_version == DEFAULT_PDF_VERSION == "1.5"
    assert split.naming_pattern == "split_{index}"
    assert split.create_output_dir


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PDFGRAFT_PDF_VERSION", "1.7")
    monkeypatch.setenv("PDFGRAFT_PRESERVE_METADATA", "off")
    monkeypatch.setenv("PDFGRAFT_COMPRESSION_LEVEL", "9")

    merge = MergeConfig.from_env()
    split = SplitConfig.from_env()

    assert merge.pdf_version == split.pdf_version == "1.7"
    assert not merge.preserve_metadata
    assert not split.preserve_metadata
    assert merge.compression_level == 9


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("PDFGRAFT_PDF_VERSION", "seventeen"),
        ("PDFGRAFT_COMPRESSION_LEVEL", "eleven"),
        ("PDFGRAFT_COMPRESSION_LEVEL", "42"),
    ],
)
def test_malformed_environment_values_fall_back(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)

    assert MergeConfig.from_env() == MergeConfig()
    assert default_pdf_version() == DEFAULT_PDF_VERSION


def test_from_mapping_overrides_defaults() -> None:
    config = MergeConfig.from_mapping({"optimize_size": True, "compression_level": 3})

    assert config.optimize_size
    assert config.compression_level == 3
    assert config.keep_bookmarks
    assert MergeConfig.from_mapping(None) == MergeConfig()
    assert config.to_dict()["compression_level"] == 3


@pytest.mark.parametrize(
    "data",
    [
        {"unknown": True},
        {"preserve_metadata": "yes"},
        {"compression_level": 4.0},
        {"compression_level": True},
        ["preserve_metadata"],
    ],
)
def test_from_mapping_rejects_bad_options(data: object) -> None:
    with pytest.raises(ValidationError):
        MergeConfig.from_mapping(data)


def test_split_config_from_mapping() -> None:
    config = SplitConfig.from_mapping({"naming_pattern": "part_{start}", "create_output_dir": False})

    assert config.naming_pattern == "part_{start}"
    assert not config.create_output_dir
    with pytest.raises(ValidationError):
        SplitConfig.from_mapping({"optimize_size": True})


@pytest.mark.parametrize("level", [0, 10])
def test_compression_level_bounds(level: int) -> None:
    with pytest.raises(ValidationError):
        MergeConfig(compression_level=level)


def test_config_validation() -> None:
    with pytest.raises(ValidationError):
        MergeConfig(pdf_version="2")
    with pytest.raises(ValidationError):
        SplitConfig(naming_pattern="  ")
