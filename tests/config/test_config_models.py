from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from robinhood_export.config import ApiConfig, ExportConfig


def test_defaults() -> None:
    config = ExportConfig()
    assert config.max_concurrency == 10
    assert config.output_format == "csv"
    assert config.api.base_url == "https://api.robinhood.com"
    assert config.api.access_token is None


def test_base_url_trailing_slash_removed() -> None:
    assert ApiConfig(base_url=" https://example.com/api/ ").base_url == "https://example.com/api"


@pytest.mark.parametrize(
    "payload",
    [
        {"max_concurrency": 0},
        {"output_format": "xml"},
        {"api": {"timeout": 0}},
        {"api": {"base_url": "ftp://example.com"}},
    ],
)
def test_invalid_values_rejected(payload: dict) -> None:
    with pytest.raises(ValidationError):
        ExportConfig.model_validate(payload)


def test_blank_token_becomes_none() -> None:
    assert ApiConfig(access_token="   ").access_token is None


def test_outputs_dir_resolution(tmp_path: Path) -> None:
    relative = ExportConfig(outputs_dir="exports")
    assert relative.resolved_outputs_dir(tmp_path) == (tmp_path / "exports").resolve()
    absolute = ExportConfig(outputs_dir=tmp_path / "abs")
    assert absolute.resolved_outputs_dir(Path("/elsewhere")) == tmp_path / "abs"
