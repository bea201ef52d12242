"""Discord-compatible webhook sink with embed batching and 429 handling."""

from __future__ import annotations

import time
from typing import Any, Callable

import httpx

from ...infra.redaction import sanitize
from ...logging_conf import get_logger
from .base import NotificationSink

DISCORD_MAX_EMBEDS = 10


def _line_count(field: dict[str, Any]) -> int:
    lines = str(field.get("value", "")).split("\n")
    return sum(1 for line in lines if line.strip() and line.strip() != "```")


def split_embed(embed: dict[str, Any], max_lines: int) -> list[dict[str, Any]]:
    """Split an embed whose fields list more than ``max_lines`` lines.

    Splits only happen between fields; a single oversized field stays whole.
    """

    fields = embed.get("fields") or []
    if sum(_line_count(field) for field in fields) <= max_lines:
        return [embed]
    parts: list[dict[str, Any]] = []
    current: list[dict[str, Any]] = []
    count = 0
    for field in fields:
        size = _line_count(field)
        if current and count + size > max_lines:
            parts.append({**embed, "fields": current})
            current, count = [], 0
        current.append(field)
        count += size
    if current:
        parts.append({**embed, "fields": current})
    return parts


def batch_message(
    message: dict[str, Any], max_lines: int, max_embeds: int
) -> list[dict[str, Any]]:
    """Expand one message into the sequence of payloads to POST."""

    embeds: list[dict[str, Any]] = []
    for embed in message.get("embeds") or []:
        embeds.extend(split_embed(embed, max_lines))
    envelope = {key: value for key, value in message.items() if key != "embeds"}
    if not embeds:
        return [message]
    step = max(1, min(max_embeds, DISCORD_MAX_EMBEDS))
    return [{**envelope, "embeds": embeds[i : i + step]} for i in range(0, len(embeds), step)]


def _retry_after(response: httpx.Response) -> float:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("retry_after"), (int, float)):
        return float(body["retry_after"])
    header = response.headers.get("Retry-After")
    try:
        return float(header) if header is not None else 1.0
    except ValueError:
        return 1.0


class WebhookSink(NotificationSink):
    """POST messages to one webhook URL."""

    def __init__(
        self,
        url: str,
        client: httpx.Client | None = None,
        timeout: float = 15.0,
        max_items_per_embed: int = 50,
        max_embeds_per_message: int = DISCORD_MAX_EMBEDS,
        post_interval: float = 0.0,
        max_retry_after: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
        channel: str = "default",
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.max_items_per_embed = max_items_per_embed
        self.max_embeds_per_message = max_embeds_per_message
        self.post_interval = post_interval
        self.max_retry_after = max_retry_after
        self.sleep = sleep
        self.channel = channel
        self.logger = get_logger("webhook").bind(channel=channel)
        self._owns_client = client is None
        self._client = client or httpx.Client()
        self._posted = False

    @property
    def name(self) -> str:
        return f"webhook:{self.channel}"

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def send(self, message: dict[str, Any]) -> bool:
        payloads = batch_message(message, self.max_items_per_embed, self.max_embeds_per_message)
        return all([self._post(payload) for payload in payloads])

    def _post(self, payload: dict[str, Any]) -> bool:
        if self._posted and self.post_interval > 0:
            self.sleep(self.post_interval)
        self._posted = True
        for attempt in (1, 2):
            try:
                response = self._client.post(self.url, json=payload, timeout=self.timeout)
            except httpx.HTTPError as exc:
                self.logger.warning("webhook_post_failed", error=sanitize(str(exc)))
                return False
            if response.is_success:
                return True
            if response.status_code == 429 and attempt == 1:
                wait = min(max(_retry_after(response), 0.0), self.max_retry_after)
                self.logger.warning("webhook_rate_limited", retry_after=wait)
                self.sleep(wait)
                continue
            self.logger.warning(
                "webhook_rejected",
                status_code=response.status_code,
                body=sanitize(response.text[:300]),
            )
            return False
        return False


__all__ = ["WebhookSink", "batch_message", "split_embed"]
