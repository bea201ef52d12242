"""Configuration package exports."""

from .loader import ConfigError, ConfigLocator, ConfigRepository
from .models import (
    DEFAULT_VOLATILE_FIELDS,
    ChannelConfig,
    EventKind,
    LoggingConfig,
    NotificationConfig,
    ScanConfig,
    ScheduleConfig,
    ScheduleType,
    SourceConfig,
    WatcherConfig,
)

__all__ = [
    "ChannelConfig",
    "ConfigError",
    "ConfigLocator",
    "ConfigRepository",
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
