"""Pydantic models describing the export configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from ..engine.concurrent import DEFAULT_MAX_CONCURRENCY


class ApiConfig(BaseModel):
    """Connection settings for the Robinhood REST API."""

    base_url: str = "https://api.robinhood.com"
    access_token: str | None = None
    timeout: float = 15.0
    user_agent: str | None = None

    @field_validator("base_url")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return value.rstrip("/")

    @field_validator("access_token", mode="before")
    @classmethod
    def _blank_token(cls, value: Any) -> str | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return str(value).strip()

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be > 0")
        return value


class ExportConfig(BaseModel):
    """Top-level settings shared by every export run."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    output_format: Literal["csv", "json"] = "csv"
    outputs_dir: Path = Field(default=Path("data/outputs"))
    include_closed_positions: bool = False

    @field_validator("outputs_dir", mode="before")
    @classmethod
    def _coerce_dir(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _validate_concurrency(self) -> "ExportConfig":
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        return self

    def resolved_outputs_dir(self, base_dir: Path) -> Path:
        """Return the outputs directory relative to the project root."""

        if not self.outputs_dir.is_absolute():
            return (base_dir / self.outputs_dir).resolve()
        return self.outputs_dir


__all__ = ["ApiConfig", "ExportConfig"]
