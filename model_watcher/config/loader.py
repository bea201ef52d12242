"""Configuration loading helpers for Model Watcher."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import WatcherConfig

CONFIG_FILENAMES = ("config.yaml", "config.yml", "config.json")
HOME_ENV_VAR = "MODEL_WATCHER_HOME"


class ConfigError(RuntimeError):
    """Raised when the configuration document is missing or invalid."""


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {path}")
    return data


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from the project home."""

    project_root: Path | None = None
    config_path: Path | None = None

    def __post_init__(self) -> None:
        if self.project_root is None:
            env_root = os.environ.get(HOME_ENV_VAR)
            root = Path(env_root).expanduser() if env_root else Path.cwd()
        else:
            root = self.project_root
        self.project_root = root.resolve()
        if self.config_path is not None:
            self.config_path = self.config_path.expanduser().resolve()

    def find_config(self) -> Path:
        if self.config_path is not None:
            if not self.config_path.exists():
                raise ConfigError(f"Configuration file not found: {self.config_path}")
            return self.config_path
        for name in CONFIG_FILENAMES:
            candidate = self.project_root / name
            if candidate.exists():
                return candidate
        raise ConfigError(
            f"No configuration file ({', '.join(CONFIG_FILENAMES)}) in {self.project_root}"
        )


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: WatcherConfig | None = None

    def load(self, *, refresh: bool = False) -> WatcherConfig:
        if self._cache is not None and not refresh:
            return self._cache
        path = self.locator.find_config()
        try:
            payload = _read_file(path)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot read {path}: {exc}") from exc
        try:
            config = WatcherConfig.model_validate(payload)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration in {path}:\n{exc}") from exc
        self._cache = config
        return config

    def output_dir(self) -> Path:
        """Directory holding the state document and scan logs."""

        path = self.load().resolved_output_dir(self.locator.project_root)
        path.mkdir(parents=True, exist_ok=True)
        return path


__all__ = ["CONFIG_FILENAMES", "ConfigError", "ConfigLocator", "ConfigRepository", "HOME_ENV_VAR"]
