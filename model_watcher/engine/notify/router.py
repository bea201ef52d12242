"""Group sources into channels and dispatch their notifications.

Routing is two steps. :func:`build_plans` is pure aggregation into immutable
:class:`ChannelPlan` objects; :class:`NotificationRouter` then walks those
plans and performs the side effects, one sink call at a time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Sequence

import httpx

from ...config import ChannelConfig, EventKind, NotificationConfig, SourceConfig
from ...logging_conf import get_logger
from ..differ import Delta, DeltaSummary
from ..records import Outcome
from .base import NotificationSink
from .render import EmbedRenderer, Message
from .webhook import WebhookSink

DEFAULT_CHANNEL = "default"

SinkFactory = Callable[[str, str], NotificationSink]


@dataclass(frozen=True, slots=True)
class ChannelPlan:
    """Everything one channel will be told about a run."""

    channel: str
    config: ChannelConfig
    outcomes: tuple[Outcome, ...]
    deltas: Mapping[str, Delta]
    summary: DeltaSummary

    @property
    def sources(self) -> tuple[str, ...]:
        return tuple(outcome.source for outcome in self.outcomes)


@dataclass(slots=True)
class DispatchReport:
    sent: int = 0
    failed: int = 0
    skipped: list[str] = field(default_factory=list)
    events: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def record(self, kind: EventKind, delivered: bool) -> None:
        if delivered:
            self.sent += 1
            self.events[kind.value] = self.events.get(kind.value, 0) + 1
        else:
            self.failed += 1


def assign_channel(source: SourceConfig, channels: Mapping[str, ChannelConfig]) -> str:
    return source.group if source.group in channels else DEFAULT_CHANNEL


def build_plans(
    sources: Sequence[SourceConfig],
    channels: Mapping[str, ChannelConfig],
    outcomes: Mapping[str, Outcome],
    deltas: Mapping[str, Delta],
) -> list[ChannelPlan]:
    """Aggregate outcomes and deltas per configured channel.

    Member order follows ``sources``. Channels without members produce no
    plan; members assigned to an unconfigured ``default`` are dropped.
    """

    members: dict[str, list[Outcome]] = {}
    for source in sources:
        outcome = outcomes.get(source.name)
        if outcome is None:
            continue
        members.setdefault(assign_channel(source, channels), []).append(outcome)

    plans = []
    for name, config in channels.items():
        channel_outcomes = members.get(name)
        if not channel_outcomes:
            continue
        channel_deltas = {
            outcome.source: deltas[outcome.source]
            for outcome in channel_outcomes
            if outcome.ok and outcome.source in deltas
        }
        summary = DeltaSummary()
        for delta in channel_deltas.values():
            summary = summary + delta.summary
        plans.append(
            ChannelPlan(
                channel=name,
                config=config,
                outcomes=tuple(channel_outcomes),
                deltas=MappingProxyType(channel_deltas),
                summary=summary,
            )
        )
    return plans


def plan_messages(plan: ChannelPlan, renderer: EmbedRenderer) -> list[tuple[EventKind, Message]]:
    """Render a plan into ``(kind, message)`` pairs in dispatch order."""

    config = plan.config
    messages: list[tuple[EventKind, Message]] = []
    if config.wants(EventKind.NEW_MODEL):
        for source, delta in plan.deltas.items():
            if delta.added:
                messages.append((EventKind.NEW_MODEL, renderer.new_models(source, delta.added)))
    if config.wants(EventKind.REMOVED_MODEL):
        for source, delta in plan.deltas.items():
            if delta.removed:
                messages.append(
                    (EventKind.REMOVED_MODEL, renderer.removed_models(source, delta.removed))
                )
    if config.wants(EventKind.MODEL_UPDATED):
        for source, delta in plan.deltas.items():
            if delta.updated:
                messages.append(
                    (EventKind.MODEL_UPDATED, renderer.updated_models(source, delta.updated))
                )
    if config.wants(EventKind.ENDPOINT_ERROR):
        for outcome in plan.outcomes:
            if not outcome.ok and outcome.configured:
                messages.append(
                    (EventKind.ENDPOINT_ERROR, renderer.endpoint_error(outcome.source, outcome.reason))
                )
    if plan.summary.has_changes:
        if config.wants(EventKind.SUMMARY_WITH_CHANGES):
            messages.append(
                (EventKind.SUMMARY_WITH_CHANGES, renderer.summary(plan.summary, plan.outcomes))
            )
    elif config.always_summary:
        messages.append((EventKind.SUMMARY_WITH_CHANGES, renderer.compact_summary(plan.outcomes)))
    return messages


class NotificationRouter:
    """Resolve channel webhooks and deliver each plan's messages."""

    def __init__(
        self,
        config: NotificationConfig,
        environ: Mapping[str, str] | None = None,
        renderer: EmbedRenderer | None = None,
        sink_factory: SinkFactory | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.config = config
        self.environ = environ if environ is not None else os.environ
        self.renderer = renderer or EmbedRenderer(config)
        self.logger = get_logger("notify")
        self._client = client
        self._sink_factory = sink_factory or self._webhook_sink

    def webhook_url(self, channel: ChannelConfig) -> str | None:
        value = self.environ.get(channel.webhook_env)
        return value.strip() if value and value.strip() else None

    def dispatch(
        self,
        sources: Sequence[SourceConfig],
        deltas: Mapping[str, Delta],
        outcomes: Mapping[str, Outcome],
    ) -> DispatchReport:
        report = DispatchReport()
        if not self.config.enabled:
            self.logger.info("notifications_disabled")
            return report
        self._log_unrouted(sources)
        for plan in build_plans(sources, self.config.channels, outcomes, deltas):
            url = self.webhook_url(plan.config)
            if url is None:
                self.logger.info(
                    "channel_skipped", channel=plan.channel, reason="webhook_not_configured"
                )
                report.skipped.append(plan.channel)
                continue
            self._deliver(plan, url, report)
        self.logger.info("dispatch_finished", sent=report.sent, failed=report.failed)
        return report

    def _deliver(self, plan: ChannelPlan, url: str, report: DispatchReport) -> None:
        sink = self._sink_factory(plan.channel, url)
        try:
            for kind, message in plan_messages(plan, self.renderer):
                try:
                    delivered = sink.send(message)
                except Exception as exc:  # noqa: BLE001
                    self.logger.error(
                        "notification_crashed", channel=plan.channel, kind=kind.value, error=str(exc)
                    )
                    delivered = False
                if not delivered:
                    self.logger.warning(
                        "notification_failed", channel=plan.channel, kind=kind.value
                    )
                report.record(kind, delivered)
        finally:
            sink.close()

    def _log_unrouted(self, sources: Iterable[SourceConfig]) -> None:
        if DEFAULT_CHANNEL in self.config.channels:
            return
        stray = [s.name for s in sources if s.group not in self.config.channels]
        if stray:
            self.logger.info("sources_without_channel", sources=stray)

    def _webhook_sink(self, channel: str, url: str) -> NotificationSink:
        return WebhookSink(
            url,
            client=self._client,
            timeout=self.config.timeout,
            max_items_per_embed=self.config.max_items_per_embed,
            max_embeds_per_message=self.config.max_embeds_per_message,
            post_interval=self.config.post_interval,
            max_retry_after=self.config.max_retry_after,
            channel=channel,
        )


__all__ = [
    "ChannelPlan",
    "DEFAULT_CHANNEL",
    "DispatchReport",
    "NotificationRouter",
    "assign_channel",
    "build_plans",
    "plan_messages",
]
