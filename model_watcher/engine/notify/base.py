"""Notification sink contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class NotificationSink(ABC):
    """Deliver one rendered message to an external destination."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs."""

    @abstractmethod
    def send(self, message: dict[str, Any]) -> bool:
        """Deliver the message; return False instead of raising on failure."""

    def close(self) -> None:
        return None


__all__ = ["NotificationSink"]
