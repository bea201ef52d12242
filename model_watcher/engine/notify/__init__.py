"""Notification rendering, batching and channel routing."""

from .base import NotificationSink
from .render import EmbedRenderer
from .router import ChannelPlan, DispatchReport, NotificationRouter, build_plans, plan_messages
from .webhook import WebhookSink, batch_message, split_embed

__all__ = [
    "ChannelPlan",
    "DispatchReport",
    "EmbedRenderer",
    "NotificationRouter",
    "NotificationSink",
    "WebhookSink",
    "batch_message",
    "build_plans",
    "plan_messages",
    "split_embed",
]
