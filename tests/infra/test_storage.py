from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from model_watcher.infra.storage import JsonDocumentStore, StorageError


def test_write_then_read(tmp_path: Path) -> None:
    store = JsonDocumentStore()
    path = tmp_path / "nested" / "doc.json"
    store.write(path, {"b": 1, "a": ["ü"]})
    assert store.read(path) == {"b": 1, "a": ["ü"]}
    assert [p.name for p in path.parent.iterdir()] == ["doc.json"]


def test_read_missing_returns_none(tmp_path: Path) -> None:
    assert JsonDocumentStore().read(tmp_path / "absent.json") is None


def test_read_corrupt_moves_file_aside(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(StorageError):
        JsonDocumentStore().read(path)
    assert not path.exists()
    assert len(list(tmp_path.glob("state.json.corrupt-*"))) == 1


def test_write_unserialisable_raises_and_cleans_up(tmp_path: Path) -> None:
    path = tmp_path / "doc.json"
    path.write_text(json.dumps({"keep": True}), encoding="utf-8")
    with pytest.raises(StorageError):
        JsonDocumentStore().write(path, {"bad": object()})
    assert json.loads(path.read_text(encoding="utf-8")) == {"keep": True}
    assert [p.name for p in tmp_path.iterdir()] == ["doc.json"]


def test_prune_and_list(tmp_path: Path) -> None:
    store = JsonDocumentStore()
    old = tmp_path / "scan-1.json"
    new = tmp_path / "scan-2.json"
    other = tmp_path / "notes.txt"
    for path in (old, new, other):
        path.write_text("{}", encoding="utf-8")
    os.utime(old, (1_000, 1_000))
    os.utime(new, (900_000, 900_000))
    os.utime(other, (1_000, 1_000))

    assert list(store.list_files(tmp_path, "scan-*.json")) == [old, new]
    removed = store.prune(tmp_path, "scan-*.json", max_age_days=1, now=900_000)
    assert removed == [old]
    assert new.exists() and other.exists()
    assert store.prune(tmp_path / "missing", "*.json", 1) == []
