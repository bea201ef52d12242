"""Compute added/removed/updated deltas between two record sets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from .records import CanonicalRecord

_MISSING = object()


@dataclass(frozen=True, slots=True)
class FieldChange:
    old: Any
    new: Any

    def as_dict(self) -> dict[str, Any]:
        return {"old": self.old, "new": self.new}


@dataclass(frozen=True, slots=True)
class RecordUpdate:
    record: CanonicalRecord
    changes: dict[str, FieldChange]

    @property
    def changed_fields(self) -> list[str]:
        return list(self.changes)

    def as_dict(self) -> dict[str, Any]:
        return {
            "record": self.record.as_dict(),
            "changes": {key: change.as_dict() for key, change in self.changes.items()},
        }


@dataclass(frozen=True, slots=True)
class DeltaSummary:
    added: int = 0
    removed: int = 0
    updated: int = 0

    @property
    def total(self) -> int:
        return self.added + self.removed + self.updated

    @property
    def has_changes(self) -> bool:
        return self.total > 0

    def __add__(self, other: "DeltaSummary") -> "DeltaSummary":
        return DeltaSummary(
            self.added + other.added,
            self.removed + other.removed,
            self.updated + other.updated,
        )

    def as_dict(self) -> dict[str, int]:
        return {"added": self.added, "removed": self.removed, "updated": self.updated}


@dataclass(frozen=True, slots=True)
class Delta:
    added: tuple[CanonicalRecord, ...] = ()
    removed: tuple[CanonicalRecord, ...] = ()
    updated: tuple[RecordUpdate, ...] = field(default=())

    @property
    def summary(self) -> DeltaSummary:
        return DeltaSummary(len(self.added), len(self.removed), len(self.updated))

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.updated)

    def as_dict(self) -> dict[str, Any]:
        return {
            "added": [record.as_dict() for record in self.added],
            "removed": [record.as_dict() for record in self.removed],
            "updated": [update.as_dict() for update in self.updated],
            "summary": self.summary.as_dict(),
        }


def field_changes(
    previous: CanonicalRecord,
    current: CanonicalRecord,
    ignore_fields: Iterable[str] = (),
) -> dict[str, FieldChange]:
    """Per-key differences between two versions of the same record.

    Compares the full provider field map, including a provider id that
    differs from the identity. A key present on one side only counts as a
    change (its missing side is reported as None). Keys are visited in
    sorted order.
    """

    skipped = set(ignore_fields)
    old = previous.fields()
    new = current.fields()
    changes: dict[str, FieldChange] = {}
    for key in sorted(set(old) | set(new)):
        if key in skipped:
            continue
        old_value = old.get(key, _MISSING)
        new_value = new.get(key, _MISSING)
        if old_value is _MISSING and new_value is _MISSING:
            continue
        if old_value is not _MISSING and new_value is not _MISSING and _equal(old_value, new_value):
            continue
        changes[key] = FieldChange(
            None if old_value is _MISSING else old_value,
            None if new_value is _MISSING else new_value,
        )
    return changes


def diff(
    previous: Sequence[CanonicalRecord] | None,
    current: Sequence[CanonicalRecord],
    ignore_fields: Iterable[str] = (),
) -> Delta:
    """Return the delta turning ``previous`` into ``current``."""

    previous = previous or ()
    ignored = tuple(ignore_fields)
    old_by_id = {record.id: record for record in previous}
    new_ids = {record.id for record in current}

    added = tuple(record for record in current if record.id not in old_by_id)
    removed = tuple(record for record in previous if record.id not in new_ids)
    updated: list[RecordUpdate] = []
    for record in current:
        before = old_by_id.get(record.id)
        if before is None:
            continue
        changes = field_changes(before, record, ignored)
        if changes:
            updated.append(RecordUpdate(record, changes))
    return Delta(added=added, removed=removed, updated=tuple(updated))


def _equal(left: Any, right: Any) -> bool:
    """Deep equality where 1 and True differ but 1 and 1.0 are equal."""

    if type(left) is not type(right):
        numeric = (int, float)
        if (
            isinstance(left, numeric)
            and isinstance(right, numeric)
            and not isinstance(left, bool)
            and not isinstance(right, bool)
        ):
            return left == right
        return False
    if isinstance(left, dict):
        return left.keys() == right.keys() and all(_equal(left[k], right[k]) for k in left)
    if isinstance(left, (list, tuple)):
        return len(left) == len(right) and all(_equal(a, b) for a, b in zip(left, right))
    return left == right


__all__ = ["Delta", "DeltaSummary", "FieldChange", "RecordUpdate", "diff", "field_changes"]
