from __future__ import annotations

from typing import Any

import pytest

from model_watcher.config import ChannelConfig, EventKind, NotificationConfig
from model_watcher.engine.differ import diff
from model_watcher.engine.notify.base import NotificationSink
from model_watcher.engine.notify.render import EmbedRenderer
from model_watcher.engine.notify.router import NotificationRouter, build_plans, plan_messages
from model_watcher.engine.records import Outcome


class RecordingSink(NotificationSink):
    def __init__(self, channel: str, url: str, log: list, fail_first: bool = False) -> None:
        self.channel = channel
        self.url = url
        self.log = log
        self.fail_first = fail_first
        self.closed = False

    @property
    def name(self) -> str:
        return self.channel

    def send(self, message: dict[str, Any]) -> bool:
        self.log.append((self.channel, message["embeds"][0]["title"]))
        if self.fail_first:
            self.fail_first = False
            return False
        return True

    def close(self) -> None:
        self.closed = True


def _channels(**extra: ChannelConfig) -> dict[str, ChannelConfig]:
    return {"default": ChannelConfig(webhook_env="HOOK_URL"), **extra}


def _kinds(messages) -> list[EventKind]:
    return [kind for kind, _message in messages]


def test_sources_grouped_into_channels(sample_source_config, make_record) -> None:
    sources = [
        sample_source_config(name="A", group="frontier"),
        sample_source_config(name="B", group="unknown"),
        sample_source_config(name="C"),
    ]
    outcomes = {s.name: Outcome.success(s.name, [make_record("m")]) for s in sources}
    deltas = {name: diff(None, outcome.records) for name, outcome in outcomes.items()}
    channels = _channels(frontier=ChannelConfig(webhook_env="FRONTIER_URL"))

    plans = build_plans(sources, channels, outcomes, deltas)

    assert [(plan.channel, plan.sources) for plan in plans] == [
        ("default", ("B", "C")),
        ("frontier", ("A",)),
    ]
    assert plans[0].summary.added == 2
    with pytest.raises(TypeError):
        plans[0].deltas["X"] = deltas["A"]  # type: ignore[index]


def test_channel_without_members_has_no_plan(sample_source_config) -> None:
    sources = [sample_source_config(name="A")]
    outcomes = {"A": Outcome.failure("A", "boom")}
    channels = _channels(frontier=ChannelConfig(webhook_env="F"))
    plans = build_plans(sources, channels, outcomes, {})
    assert [plan.channel for plan in plans] == ["default"]


def test_dispatch_order_per_channel(sample_source_config, make_record, fixed_clock) -> None:
    sources = [sample_source_config(name="A"), sample_source_config(name="B")]
    previous = [make_record("old"), make_record("kept", owner="x")]
    current = [make_record("kept", owner="y"), make_record("new")]
    outcomes = {"A": Outcome.success("A", current), "B": Outcome.failure("B", "HTTP 500")}
    deltas = {"A": diff(previous, current)}
    (plan,) = build_plans(sources, _channels(), outcomes, deltas)

    messages = plan_messages(plan, EmbedRenderer(NotificationConfig(), clock=fixed_clock))

    assert _kinds(messages) == [
        EventKind.NEW_MODEL,
        EventKind.REMOVED_MODEL,
        EventKind.MODEL_UPDATED,
        EventKind.ENDPOINT_ERROR,
        EventKind.SUMMARY_WITH_CHANGES,
    ]


def test_unconfigured_never_renders_endpoint_error(sample_source_config, make_record, fixed_clock) -> None:
    sources = [sample_source_config(name="X"), sample_source_config(name="Y")]
    outcomes = {
        "X": Outcome.success("X", [make_record("a")]),
        "Y": Outcome.failure("Y", "missing credential", configured=False),
    }
    deltas = {"X": diff([make_record("a")], [make_record("a")])}
    (plan,) = build_plans(sources, _channels(), outcomes, deltas)
    assert plan_messages(plan, EmbedRenderer(clock=fixed_clock)) == []


def test_notify_on_filters_kinds(sample_source_config, make_record, fixed_clock) -> None:
    sources = [sample_source_config(name="A")]
    outcomes = {"A": Outcome.success("A", [make_record("n")])}
    deltas = {"A": diff([make_record("gone")], [make_record("n")])}
    channels = {"default": ChannelConfig(webhook_env="H", notify_on=["removed_model"])}
    (plan,) = build_plans(sources, channels, outcomes, deltas)
    assert _kinds(plan_messages(plan, EmbedRenderer(clock=fixed_clock))) == [EventKind.REMOVED_MODEL]


def test_always_summary_sends_compact_status(sample_source_config, make_record, fixed_clock) -> None:
    sources = [sample_source_config(name="A")]
    outcomes = {"A": Outcome.success("A", [make_record("a")])}
    deltas = {"A": diff([make_record("a")], [make_record("a")])}
    channels = {"default": ChannelConfig(webhook_env="H", always_summary=True)}
    (plan,) = build_plans(sources, channels, outcomes, deltas)
    ((kind, message),) = plan_messages(plan, EmbedRenderer(clock=fixed_clock))
    assert kind is EventKind.SUMMARY_WITH_CHANGES
    assert message["embeds"][0]["title"] == "✅ No Model Changes"


def test_dispatch_skips_channels_without_webhook(sample_source_config, make_record) -> None:
    sources = [sample_source_config(name="A", group="frontier"), sample_source_config(name="B")]
    outcomes = {s.name: Outcome.success(s.name, [make_record("m")]) for s in sources}
    deltas = {name: diff(None, outcome.records) for name, outcome in outcomes.items()}
    config = NotificationConfig(channels=_channels(frontier=ChannelConfig(webhook_env="FRONTIER_URL")))
    log: list = []
    router = NotificationRouter(
        config,
        environ={"HOOK_URL": "https://hooks.example/default"},
        sink_factory=lambda channel, url: RecordingSink(channel, url, log),
    )

    report = router.dispatch(sources, deltas, outcomes)

    assert report.skipped == ["frontier"]
    assert [channel for channel, _title in log] == ["default", "default"]
    assert report.sent == 2
    assert report.events == {"new_model": 1, "summary_with_changes": 1}


def test_delivery_failure_does_not_stop_other_messages(sample_source_config, make_record) -> None:
    sources = [sample_source_config(name="A")]
    outcomes = {"A": Outcome.success("A", [make_record("n")])}
    deltas = {"A": diff([make_record("gone")], [make_record("n")])}
    log: list = []
    sinks: list[RecordingSink] = []

    def factory(channel: str, url: str) -> RecordingSink:
        sink = RecordingSink(channel, url, log, fail_first=True)
        sinks.append(sink)
        return sink

    router = NotificationRouter(
        NotificationConfig(channels=_channels()),
        environ={"HOOK_URL": "https://hooks.example/default"},
        sink_factory=factory,
    )
    report = router.dispatch(sources, deltas, outcomes)

    assert len(log) == 3
    assert report.failed == 1
    assert report.sent == 2
    assert not report.ok
    assert sinks[0].closed


def test_disabled_notifications_send_nothing(sample_source_config, make_record) -> None:
    sources = [sample_source_config(name="A")]
    outcomes = {"A": Outcome.success("A", [make_record("n")])}
    log: list = []
    router = NotificationRouter(
        NotificationConfig(enabled=False, channels=_channels()),
        environ={"HOOK_URL": "https://hooks.example/default"},
        sink_factory=lambda channel, url: RecordingSink(channel, url, log),
    )
    report = router.dispatch(sources, {"A": diff(None, outcomes["A"].records)}, outcomes)
    assert log == []
    assert report.sent == 0
