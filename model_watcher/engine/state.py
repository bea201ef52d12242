"""Last-committed snapshot per source, persisted in one JSON document."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence

from ..config import DEFAULT_VOLATILE_FIELDS
from ..infra.storage import JsonDocumentStore, StorageError
from ..logging_conf import get_logger
from .records import CanonicalRecord

STATE_FILENAME = "state.json"
STATE_VERSION = 2

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StateStore:
    """Read-previous / commit-current over ``<logs_dir>/state.json``.

    The document is read once per run by :meth:`load`. Every successful
    :meth:`commit` replaces one source's snapshot and rewrites the whole
    document atomically, so a crash mid-run never leaves a partial file.
    """

    def __init__(
        self,
        path: Path,
        store: JsonDocumentStore | None = None,
        volatile_fields: Iterable[str] = DEFAULT_VOLATILE_FIELDS,
        clock: Clock = utc_now,
    ) -> None:
        self.path = path
        self.store = store or JsonDocumentStore()
        self.volatile_fields = tuple(volatile_fields)
        self.clock = clock
        self.logger = get_logger("state")
        self._document: dict[str, Any] | None = None

    def load(self) -> dict[str, Any]:
        try:
            raw = self.store.read(self.path)
        except StorageError as exc:
            self.logger.error("state_load_failed", path=str(self.path), error=str(exc))
            raw = None
        self._document = self._coerce(raw)
        return self._document

    @property
    def document(self) -> dict[str, Any]:
        if self._document is None:
            return self.load()
        return self._document

    def previous(self, source: str) -> list[CanonicalRecord] | None:
        entry = self.document["sources"].get(source)
        if entry is None:
            return None
        records = []
        for item in entry.get("records", []):
            if isinstance(item, dict) and item.get("id") is not None:
                records.append(CanonicalRecord.from_dict(item))
        return records

    def commit(self, source: str, records: Sequence[CanonicalRecord]) -> bool:
        now = self.clock().isoformat()
        document = self.document
        document["sources"][source] = {
            "committed_at": now,
            "records": [record.without(self.volatile_fields).as_dict() for record in records],
        }
        document["updated_at"] = now
        document["version"] = STATE_VERSION
        try:
            self.store.write(self.path, document)
        except StorageError as exc:
            self.logger.error("state_commit_failed", source=source, error=str(exc))
            return False
        self.logger.debug("state_committed", source=source, records=len(records))
        return True

    def snapshot_counts(self) -> dict[str, int]:
        return {
            name: len(entry.get("records", []))
            for name, entry in self.document["sources"].items()
        }

    def committed_at(self, source: str) -> str | None:
        entry = self.document["sources"].get(source)
        return entry.get("committed_at") if entry else None

    def _coerce(self, raw: Any) -> dict[str, Any]:
        empty = {"version": STATE_VERSION, "updated_at": None, "sources": {}}
        if raw is None:
            return empty
        if not isinstance(raw, dict) or not isinstance(raw.get("sources"), dict):
            self.logger.warning("state_unrecognised", path=str(self.path))
            return empty
        sources = {
            name: entry
            for name, entry in raw["sources"].items()
            if isinstance(entry, dict) and isinstance(entry.get("records"), list)
        }
        return {
            "version": raw.get("version", STATE_VERSION),
            "updated_at": raw.get("updated_at"),
            "sources": sources,
        }


__all__ = ["STATE_FILENAME", "StateStore", "utc_now"]
