"""Configuration loading helpers for outage-herald."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .models import HeraldConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_FILENAME = "herald.yaml"


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
        env_root = os.environ.get("OUTAGE_HERALD_HOME")
        if self.project_root is not None:
            root = Path(self.project_root).expanduser().resolve()
        elif env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = Path(__file__).resolve().parents[2]
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None, path: Path | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self.path = path or self.locator.config_path()
        self._cache: HeraldConfig | None = None

    def load(self) -> HeraldConfig:
        if self._cache is not None:
            return self._cache
        if self.path.exists():
            if self.path.suffix not in CONFIG_EXTENSIONS:
                raise ValueError(f"Unsupported configuration format: {self.path}")
            config = HeraldConfig.model_validate(_read_file(self.path))
        else:
            config = HeraldConfig()
            self.save(config)
        self._cache = config
        return config

    def save(self, config: HeraldConfig) -> None:
        payload = config.model_dump(mode="json", exclude_none=True)
        _write_file(self.path, payload)
        self._cache = config

    def cache_dir(self) -> Path:
        return self.load().resolved_cache_dir(self.locator.project_root)


__all__ = ["CONFIG_EXTENSIONS", "ConfigLocator", "ConfigRepository"]
