"""Shared fixtures: config builders, records and a fixed clock."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from model_watcher.config import (
    ChannelConfig,
    ConfigLocator,
    ConfigRepository,
    NotificationConfig,
    SourceConfig,
    WatcherConfig,
)
from model_watcher.engine.records import CanonicalRecord

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def sample_source_config() -> Callable[..., SourceConfig]:
    def _builder(**overrides: Any) -> SourceConfig:
        base: dict[str, Any] = {
            "name": "Example",
            "base_url": "https://api.example.com/v1",
            "api_key_env": "EXAMPLE_API_KEY",
        }
        base.update(overrides)
        return SourceConfig(**base)

    return _builder


@pytest.fixture
def make_record() -> Callable[..., CanonicalRecord]:
    def _builder(record_id: str, **attributes: Any) -> CanonicalRecord:
        name = attributes.pop("name", record_id)
        return CanonicalRecord(record_id, name, attributes)

    return _builder


@pytest.fixture
def sample_watcher_config(sample_source_config) -> Callable[..., WatcherConfig]:
    def _builder(sources: Iterable[SourceConfig] | None = None, **overrides: Any) -> WatcherConfig:
        notifications = overrides.pop(
            "notifications",
            NotificationConfig(channels={"default": ChannelConfig(webhook_env="HOOK_URL")}),
        )
        endpoints = list(sources) if sources is not None else [sample_source_config()]
        return WatcherConfig(endpoints=endpoints, notifications=notifications, **overrides)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("MODEL_WATCHER_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
