"""Build Discord-compatible webhook messages from deltas and outcomes.

Everything here is pure: the clock is injected and nothing touches the
network. Each builder returns one message ``{"username", "avatar_url",
"embeds"}``; splitting into several HTTP posts is the sink's job.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Sequence

from ...config import NotificationConfig
from ..differ import DeltaSummary, RecordUpdate
from ..records import CanonicalRecord, Outcome
from ..state import utc_now

FIELD_VALUE_LIMIT = 1024
EMBED_TEXT_LIMIT = 6000
ERROR_TEXT_LIMIT = 500
FENCE = "```"

COLOR_ADDED = 0x10B981
COLOR_REMOVED = 0xEF4444
COLOR_UPDATED = 0xF59E0B
COLOR_ERROR = 0xF97316
COLOR_NEUTRAL = 0x3B82F6
COLOR_IDLE = 0x6B7280

Message = dict[str, Any]


def cap(text: str, limit: int = FIELD_VALUE_LIMIT) -> str:
    """Trim text to ``limit`` characters, keeping code fences balanced."""

    if len(text) <= limit:
        return text
    if text.startswith(FENCE):
        closing = f"\n…\n{FENCE}"
        return text[: limit - len(closing)].rstrip("\n") + closing
    return text[: limit - 1] + "…"


def code_block(lines: Sequence[str]) -> str:
    return cap(f"{FENCE}\n" + "\n".join(lines) + f"\n{FENCE}")


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _fits(fields: Sequence[dict[str, Any]]) -> bool:
    return sum(len(field["name"]) + len(field["value"]) for field in fields) <= EMBED_TEXT_LIMIT


class EmbedRenderer:
    """Turn per-source changes into size-bounded embeds."""

    def __init__(
        self,
        config: NotificationConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config or NotificationConfig()
        self.clock = clock

    # ------------------------------------------------------------------
    def new_models(self, source: str, records: Sequence[CanonicalRecord]) -> Message:
        ids = [record.id for record in records]
        fields = self._chunked_fields("New Models", ids)
        if len(ids) > self.config.max_items_before_summary or not _fits(fields):
            return self._count_only(
                "🆕 New Models Detected",
                f"**{source}** added **{len(ids)}** new models {self._relative()}!",
                COLOR_ADDED,
                self.config.state_url,
                "Full list",
            )
        return self._message(
            self._embed(
                "🆕 New Models Detected",
                f"**{source}** just added {_plural(len(ids), 'new model')} {self._relative()}!",
                COLOR_ADDED,
                fields,
            )
        )

    def removed_models(self, source: str, records: Sequence[CanonicalRecord]) -> Message:
        ids = [record.id for record in records]
        fields = self._chunked_fields("Removed Models", ids)
        if len(ids) > self.config.max_items_before_summary or not _fits(fields):
            return self._count_only(
                "🗑️ Models Removed",
                f"**{source}** removed **{len(ids)}** models {self._relative()}.",
                COLOR_REMOVED,
                self.config.state_url,
                "Full list",
            )
        return self._message(
            self._embed(
                "🗑️ Models Removed",
                f"**{source}** removed {_plural(len(ids), 'model')} {self._relative()}.",
                COLOR_REMOVED,
                fields,
            )
        )

    def updated_models(self, source: str, updates: Sequence[RecordUpdate]) -> Message:
        lines = [f"{update.record.id}: {', '.join(update.changed_fields)}" for update in updates]
        fields = self._chunked_fields("Updated Models", lines)
        if len(updates) > self.config.max_items_before_summary or not _fits(fields):
            return self._count_only(
                "🔄 Models Updated",
                f"**{source}** has **{len(updates)}** model updates {self._relative()}.",
                COLOR_UPDATED,
                self.config.diff_url,
                "View changes",
            )
        description = f"**{source}** has {_plural(len(updates), 'model update')} {self._relative()}."
        if self.config.diff_url:
            description += f"\n\nView changes: [diff]({self.config.diff_url})"
        return self._message(
            self._embed(
                "🔄 Models Updated",
                description,
                COLOR_UPDATED,
                fields,
            )
        )

    def endpoint_error(self, source: str, reason: str | None) -> Message:
        detail = (reason or "unknown error")[:ERROR_TEXT_LIMIT]
        return self._message(
            self._embed(
                "⚠️ Endpoint Error",
                f"Failed to fetch models from **{source}** {self._relative()}",
                COLOR_ERROR,
                [{"name": "Error Details", "value": code_block([detail])}],
            )
        )

    def summary(self, summary: DeltaSummary, outcomes: Sequence[Outcome]) -> Message:
        succeeded = sum(1 for outcome in outcomes if outcome.ok)
        failed = len(outcomes) - succeeded
        if summary.added and not summary.removed:
            color, trend = COLOR_ADDED, "📈"
        elif summary.removed:
            color, trend = COLOR_REMOVED, "📉"
        else:
            color, trend = COLOR_NEUTRAL, "➡️"
        description = (
            f"{trend} Scanned **{len(outcomes)}** endpoints | "
            f"{succeeded} success, {failed} failed {self._relative()}"
        )
        if self.config.diff_url:
            description += f"\n\nView changes: [diff]({self.config.diff_url})"
        fields = [
            {
                "name": "Changes This Scan",
                "value": (
                    f"➕ **{summary.added}** added | ➖ **{summary.removed}** removed | "
                    f"🔄 **{summary.updated}** updated"
                ),
                "inline": False,
            }
        ]
        fields.extend(self._status_fields(outcomes))
        return self._message(self._embed("🔍 Model Scan Complete", description, color, fields))

    def compact_summary(self, outcomes: Sequence[Outcome]) -> Message:
        online = sum(1 for outcome in outcomes if outcome.ok)
        status = "\n".join(
            f"{'✅' if outcome.ok else '❌'} {outcome.source}: {outcome.record_count}"
            for outcome in outcomes
        )
        return self._message(
            self._embed(
                "✅ No Model Changes",
                f"Scanned **{len(outcomes)}** endpoints - no changes detected {self._relative()}",
                COLOR_IDLE,
                [{"name": f"Status ({online}/{len(outcomes)} online)", "value": cap(status or "-")}],
            )
        )

    # ------------------------------------------------------------------
    def _chunked_fields(self, label: str, lines: Sequence[str]) -> list[dict[str, Any]]:
        """Pack lines into fields closed at the item cap or the value limit.

        Every line lands in some field; only a single line longer than a
        whole field is shortened.
        """

        budget = FIELD_VALUE_LIMIT - len(code_block([]))
        chunks: list[list[str]] = []
        used = 0
        for line in lines:
            line = cap(line, budget)
            full = chunks and len(chunks[-1]) >= self.config.max_items_per_field
            if not chunks or full or used + len(line) + 1 > budget:
                chunks.append([])
                used = 0
            chunks[-1].append(line)
            used += len(line) + 1
        fields = []
        start = 1
        for chunk in chunks:
            name = label
            if len(chunks) > 1:
                name = f"{label} ({start}-{start + len(chunk) - 1})"
            fields.append({"name": name, "value": code_block(chunk)})
            start += len(chunk)
        return fields

    def _status_fields(self, outcomes: Sequence[Outcome]) -> list[dict[str, Any]]:
        fields: list[dict[str, Any]] = []
        current = {"name": "Endpoints", "value": ""}
        for outcome in outcomes:
            if outcome.ok:
                line = f"🟢 **{outcome.source}**: {_plural(outcome.record_count, 'model')}"
            elif not outcome.configured:
                line = f"⚪ **{outcome.source}**: Not configured"
            else:
                line = f"🔴 **{outcome.source}**: Failed"
            if current["value"] and len(current["value"]) + len(line) + 1 > FIELD_VALUE_LIMIT:
                fields.append(current)
                current = {"name": "Endpoints (cont.)", "value": ""}
            current["value"] += line + "\n"
        if current["value"]:
            current["value"] = cap(current["value"])
            fields.append(current)
        return fields

    def _count_only(
        self, title: str, description: str, color: int, link: str | None, link_label: str
    ) -> Message:
        if link:
            description += f"\n\n{link_label}: {link}"
        return self._message(self._embed(title, description, color, []))

    def _embed(
        self, title: str, description: str, color: int, fields: list[dict[str, Any]]
    ) -> dict[str, Any]:
        embed: dict[str, Any] = {
            "title": title,
            "description": description,
            "color": color,
            "timestamp": self.clock().isoformat(),
            "footer": {"text": self.config.footer},
        }
        if fields:
            embed["fields"] = fields
        if self.config.url:
            embed["url"] = self.config.url
        if self.config.avatar_url:
            embed["footer"]["icon_url"] = self.config.avatar_url
        return embed

    def _message(self, *embeds: dict[str, Any]) -> Message:
        message: Message = {"username": self.config.username, "embeds": list(embeds)}
        if self.config.avatar_url:
            message["avatar_url"] = self.config.avatar_url
        return message

    def _relative(self) -> str:
        return f"<t:{int(self.clock().timestamp())}:R>"


__all__ = ["EMBED_TEXT_LIMIT", "EmbedRenderer", "FIELD_VALUE_LIMIT", "ERROR_TEXT_LIMIT", "Message", "cap", "code_block"]
