"""Storage abstractions for the snapshot document and scan logs."""

from __future__ import annotations

import json
import os
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Iterable


class StorageError(RuntimeError):
    """Raised when a JSON document cannot be read or written."""


class JsonDocumentStore:
    """Read and atomically replace JSON documents on local disk."""

    def __init__(self) -> None:
        self._lock = Lock()

    def read(self, path: Path) -> Any | None:
        """Return the decoded document, or None when it does not exist.

        A document that cannot be decoded is moved aside to
        ``<name>.corrupt-<timestamp>`` so the next write starts clean, and a
        StorageError is raised for the caller to log.
        """

        if not path.exists():
            return None
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Cannot read {path}: {exc}") from exc
        try:
            return json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
            aside = path.with_name(f"{path.name}.corrupt-{stamp}")
            try:
                path.rename(aside)
            except OSError:
                aside = path
            raise StorageError(f"Corrupt JSON in {path} (kept at {aside.name}): {exc}") from exc

    def write(self, path: Path, payload: Any) -> None:
        """Serialise payload and swap it into place in a single rename."""

        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as stream:
                        json.dump(payload, stream, indent=2, ensure_ascii=False, sort_keys=False)
                        stream.write("\n")
                    os.replace(tmp_name, path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except (OSError, TypeError, ValueError) as exc:
                raise StorageError(f"Cannot write {path}: {exc}") from exc

    def prune(self, directory: Path, pattern: str, max_age_days: int, *, now: float | None = None) -> list[Path]:
        """Delete files matching pattern whose mtime is older than max_age_days."""

        if not directory.exists():
            return []
        cutoff = (now if now is not None else time.time()) - max_age_days * 86400
        removed: list[Path] = []
        for path in sorted(directory.glob(pattern)):
            if not path.is_file():
                continue
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed.append(path)
        return removed

    def list_files(self, directory: Path, pattern: str) -> Iterable[Path]:
        if not directory.exists():
            return []
        return sorted(p for p in directory.glob(pattern) if p.is_file())


__all__ = ["JsonDocumentStore", "StorageError"]
