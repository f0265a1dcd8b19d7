"""Configuration loading helpers for subharvest."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..errors import ConfigurationError
from .models import GlobalConfig

GLOBAL_CONFIG_FILENAME = "global_config.yaml"


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
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("SUBHARVEST_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def global_config_path(self) -> Path:
        return self.data_dir / GLOBAL_CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._global_cache: GlobalConfig | None = None

    def load_global_config(self) -> GlobalConfig:
        if self._global_cache is not None:
            return self._global_cache
        path = self.locator.global_config_path()
        if path.exists():
            try:
                global_cfg = GlobalConfig.model_validate(_read_file(path))
            except (ValidationError, ValueError, yaml.YAMLError) as exc:
                raise ConfigurationError(f"invalid global config {path}: {exc}") from exc
        else:
            global_cfg = GlobalConfig()
            self.save_global_config(global_cfg)
        self._global_cache = global_cfg
        return global_cfg

    def save_global_config(self, config: GlobalConfig) -> None:
        path = self.locator.global_config_path()
        payload = config.model_dump(mode="json")
        _write_file(path, payload)
        self._global_cache = config

    def database_path(self) -> Path:
        return self.load_global_config().resolved_database_path(self.locator.project_root)


__all__ = ["ConfigLocator", "ConfigRepository", "GLOBAL_CONFIG_FILENAME"]
