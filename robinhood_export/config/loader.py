"""Configuration loading helpers for robinhood-export."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .models import ExportConfig

CONFIG_FILENAME = "export_config.yaml"
HOME_ENV = "ROBINHOOD_EXPORT_HOME"
TOKEN_ENV = "ROBINHOOD_EXPORT_TOKEN"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    outputs_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path.cwd()).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.outputs_dir = (self.data_dir / "outputs").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.outputs_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: ExportConfig | None = None

    def load_config(self) -> ExportConfig:
        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        if path.exists():
            config = ExportConfig.model_validate(_read_file(path))
        else:
            config = ExportConfig()
            self.save_config(config)
        token = os.environ.get(TOKEN_ENV)
        if token:
            # Environment token is applied on load only, never written back.
            config = config.model_copy(
                update={"api": config.api.model_copy(update={"access_token": token.strip()})}
            )
        self._cache = config
        return config

    def save_config(self, config: ExportConfig) -> None:
        payload = config.model_dump(mode="json")
        env_token = os.environ.get(TOKEN_ENV)
        if env_token and payload["api"].get("access_token") == env_token.strip():
            payload["api"]["access_token"] = None
        _write_file(self.locator.config_path(), payload)
        self._cache = None

    def outputs_dir(self, config: ExportConfig | None = None) -> Path:
        config = config or self.load_config()
        return config.resolved_outputs_dir(self.locator.project_root)


__all__ = ["ConfigLocator", "ConfigRepository", "CONFIG_FILENAME", "HOME_ENV", "TOKEN_ENV"]
