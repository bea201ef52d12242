"""Per-run scan log artifacts and their retention."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from ..infra.redaction import sanitize_object
from ..infra.storage import JsonDocumentStore, StorageError
from ..logging_conf import get_logger
from .differ import Delta
from .records import Outcome

SCAN_LOG_PATTERN = "scan-*.json"


def scan_totals(outcomes: Mapping[str, Outcome]) -> dict[str, int]:
    configured = [outcome for outcome in outcomes.values() if outcome.configured]
    return {
        "total": len(outcomes),
        "successful": sum(1 for outcome in configured if outcome.ok),
        "failed": sum(1 for outcome in configured if not outcome.ok),
        "unconfigured": len(outcomes) - len(configured),
    }


def build_record(
    outcomes: Mapping[str, Outcome],
    deltas: Mapping[str, Delta],
    timestamp: datetime,
) -> dict[str, Any]:
    """Assemble the (unredacted) scan log payload."""

    changes: dict[str, Any] = {}
    for name, outcome in outcomes.items():
        delta = deltas.get(name)
        if outcome.ok and delta is not None:
            changes[name] = delta.as_dict()
        else:
            changes[name] = {
                **Delta().as_dict(),
                "error": outcome.reason,
                "configured": outcome.configured,
            }
    return {
        "timestamp": timestamp.isoformat(),
        "scan": scan_totals(outcomes),
        "results": [outcome.summary() for outcome in outcomes.values()],
        "changes": changes,
    }


class ScanLog:
    """Write redacted ``scan-<timestamp>.json`` artifacts into the logs directory."""

    def __init__(self, directory: Path, store: JsonDocumentStore | None = None) -> None:
        self.directory = directory
        self.store = store or JsonDocumentStore()
        self.logger = get_logger("scan_log")

    def path_for(self, timestamp: datetime) -> Path:
        stamp = timestamp.strftime("%Y-%m-%dT%H-%M-%S-%f")
        return self.directory / f"scan-{stamp}.json"

    def write(
        self,
        outcomes: Mapping[str, Outcome],
        deltas: Mapping[str, Delta],
        timestamp: datetime,
    ) -> Path | None:
        record = sanitize_object(build_record(outcomes, deltas, timestamp))
        path = self.path_for(timestamp)
        try:
            self.store.write(path, record)
        except StorageError as exc:
            self.logger.error("scan_log_write_failed", path=str(path), error=str(exc))
            return None
        self.logger.info("scan_log_written", path=str(path))
        return path

    def cleanup(self, history_days: int, *, now: float | None = None) -> list[Path]:
        try:
            removed = self.store.prune(self.directory, SCAN_LOG_PATTERN, history_days, now=now)
        except OSError as exc:
            self.logger.error("scan_log_cleanup_failed", error=str(exc))
            return []
        if removed:
            self.logger.info("scan_logs_pruned", count=len(removed))
        return removed

    def recent(self, count: int = 10) -> list[tuple[Path, dict[str, Any]]]:
        """Newest artifacts first, with their parsed payloads."""

        paths = list(self.store.list_files(self.directory, SCAN_LOG_PATTERN))[::-1][:count]
        entries = []
        for path in paths:
            try:
                payload = self.store.read(path)
            except StorageError as exc:
                self.logger.warning("scan_log_unreadable", path=str(path), error=str(exc))
                continue
            if isinstance(payload, dict):
                entries.append((path, payload))
        return entries


__all__ = ["SCAN_LOG_PATTERN", "ScanLog", "build_record", "scan_totals"]
