"""Pydantic models used across the Model Watcher configuration flow."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_VOLATILE_FIELDS = ("created", "updated", "modified_at")


class ScheduleType(str, Enum):
    """Scheduler modes supported by the watch loop."""

    CRON = "cron"
    INTERVAL = "interval"


class EventKind(str, Enum):
    """Notification event kinds, in per-channel dispatch order."""

    NEW_MODEL = "new_model"
    REMOVED_MODEL = "removed_model"
    MODEL_UPDATED = "model_updated"
    ENDPOINT_ERROR = "endpoint_error"
    SUMMARY_WITH_CHANGES = "summary_with_changes"


class ScheduleConfig(BaseModel):
    """Configuration describing when a scan should run."""

    type: ScheduleType = Field(default=ScheduleType.INTERVAL)
    value: Any = Field(
        default=3600,
        description="Cron expression, or interval seconds / IntervalTrigger kwargs.",
    )

    @model_validator(mode="after")
    def _validate_value(self) -> "ScheduleConfig":
        if self.type is ScheduleType.CRON and not isinstance(self.value, str):
            raise ValueError("Cron schedule requires string expression")
        if self.type is ScheduleType.INTERVAL:
            if isinstance(self.value, bool) or not isinstance(self.value, (int, float, dict)):
                raise ValueError("Interval schedule requires seconds (int/float) or kwargs dict")
            if isinstance(self.value, (int, float)) and self.value <= 0:
                raise ValueError("Interval seconds must be positive")
        return self


class SourceConfig(BaseModel):
    """Static description of one remote model catalog."""

    model_config = ConfigDict(frozen=True)

    name: str
    base_url: str = Field(validation_alias=AliasChoices("base_url", "baseUrl"))
    api_key_env: str = Field(validation_alias=AliasChoices("api_key_env", "apiKeyEnv"))
    models_endpoint: str = Field(
        default="/models",
        validation_alias=AliasChoices("models_endpoint", "modelsEndpoint"),
    )
    headers: dict[str, str] = Field(default_factory=dict)
    provider: str = "openai"
    group: str = "default"
    enabled: bool = True

    @field_validator("name", "base_url", "api_key_env")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("value cannot be empty")
        return value

    @field_validator("models_endpoint")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        value = value.strip()
        if value and not value.startswith("/"):
            value = "/" + value
        return value

    @field_validator("provider", "group")
    @classmethod
    def _lower(cls, value: str) -> str:
        return value.strip().lower() or "default"

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.models_endpoint}"


class ScanConfig(BaseModel):
    """Fetch timeout and per-source retry policy."""

    timeout: float = Field(default=30.0, gt=0)
    retry_attempts: int = Field(
        default=2, ge=0, validation_alias=AliasChoices("retry_attempts", "retryAttempts")
    )
    retry_delay: float = Field(
        default=1.0, ge=0, validation_alias=AliasChoices("retry_delay", "retryDelay")
    )
    max_workers: int = Field(default=8, ge=1)


class ChannelConfig(BaseModel):
    """One notification destination and the events it wants."""

    webhook_env: str = Field(validation_alias=AliasChoices("webhook_env", "webhookEnv"))
    notify_on: list[EventKind] = Field(
        default_factory=lambda: list(EventKind),
        validation_alias=AliasChoices("notify_on", "notifyOn"),
    )
    always_summary: bool = Field(
        default=False, validation_alias=AliasChoices("always_summary", "alwaysSummary")
    )

    def wants(self, kind: EventKind) -> bool:
        return kind in self.notify_on


class NotificationConfig(BaseModel):
    """Rendering limits and channel map for webhook notifications."""

    enabled: bool = True
    username: str = "Model Watcher"
    avatar_url: str | None = None
    url: str | None = None
    state_url: str | None = None
    diff_url: str | None = None
    footer: str = "Model Watcher • AI Model Scanner"
    max_items_per_field: int = Field(default=10, ge=1)
    max_items_before_summary: int = Field(default=20, ge=1)
    max_items_per_embed: int = Field(default=50, ge=1)
    max_embeds_per_message: int = Field(default=10, ge=1, le=10)
    post_interval: float = Field(default=0.0, ge=0)
    max_retry_after: float = Field(default=30.0, ge=0)
    timeout: float = Field(default=15.0, gt=0)
    channels: dict[str, ChannelConfig] = Field(
        default_factory=dict, validation_alias=AliasChoices("channels", "webhooks")
    )

    @model_validator(mode="after")
    def _validate_limits(self) -> "NotificationConfig":
        if self.max_items_before_summary < self.max_items_per_field:
            raise ValueError("max_items_before_summary must be >= max_items_per_field")
        return self


class LoggingConfig(BaseModel):
    """Where state and scan logs live and which fields are volatile."""

    output_dir: Path = Field(
        default=Path("logs"), validation_alias=AliasChoices("output_dir", "outputDir")
    )
    history_days: int = Field(
        default=30, ge=1, validation_alias=AliasChoices("history_days", "historyDays")
    )
    volatile_fields: tuple[str, ...] = DEFAULT_VOLATILE_FIELDS

    @field_validator("output_dir", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("volatile_fields", mode="before")
    @classmethod
    def _coerce_fields(cls, value: Any) -> tuple[str, ...]:
        if value is None:
            return DEFAULT_VOLATILE_FIELDS
        if isinstance(value, str):
            value = [value]
        return tuple(dict.fromkeys(str(item).strip() for item in value if str(item).strip()))


class WatcherConfig(BaseModel):
    """Root configuration document."""

    endpoints: list[SourceConfig] = Field(default_factory=list)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    notifications: NotificationConfig = Field(
        default_factory=NotificationConfig,
        validation_alias=AliasChoices("notifications", "discord"),
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)

    @model_validator(mode="after")
    def _unique_names(self) -> "WatcherConfig":
        seen: set[str] = set()
        for source in self.endpoints:
            if source.name in seen:
                raise ValueError(f"Duplicate endpoint name: {source.name}")
            seen.add(source.name)
        return self

    @property
    def active_sources(self) -> list[SourceConfig]:
        return [source for source in self.endpoints if source.enabled]

    def resolved_output_dir(self, base_dir: Path) -> Path:
        """Return the log/state directory relative to the project home."""

        output_dir = self.logging.output_dir
        if not output_dir.is_absolute():
            return (base_dir / output_dir).resolve()
        return output_dir


__all__ = [
    "ChannelConfig",
    "DEFAULT_VOLATILE_FIELDS",
    "EventKind",
    "LoggingConfig",
    "NotificationConfig",
    "ScanConfig",
    "ScheduleConfig",
    "ScheduleType",
    "SourceConfig",
    "WatcherConfig",
]
