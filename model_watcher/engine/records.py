"""Canonical record model shared by every catalog source."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

IDENTITY_FIELD = "id"
NAME_FIELD = "name"
DISPLAY_FIELD = "display_name"
ATTRIBUTES_FIELD = "attributes"
DISPLAY_NAME_KEYS = ("display_name", "displayName", "name")


@dataclass(frozen=True, slots=True)
class CanonicalRecord:
    """One catalog entry; identity is ``id`` alone.

    ``attributes`` keeps every provider field verbatim, volatile timestamps
    and a provider ``id`` or ``name`` that differs from the identity
    included, so nothing a provider reports is lost before diffing.
    """

    id: str
    display_name: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def fields(self) -> dict[str, Any]:
        """Key map compared by the differ.

        Every attribute as reported, plus a ``name`` carrying the display
        name when the provider sent no display-name key of its own.
        """

        compared = dict(self.attributes)
        if not any(key in compared for key in DISPLAY_NAME_KEYS):
            compared[NAME_FIELD] = self.display_name
        return compared

    def as_dict(self) -> dict[str, Any]:
        """Persisted form used by the state document and scan logs."""

        return {
            IDENTITY_FIELD: self.id,
            DISPLAY_FIELD: self.display_name,
            ATTRIBUTES_FIELD: dict(self.attributes),
        }

    def without(self, fields: Iterable[str]) -> "CanonicalRecord":
        """Return a copy with the given attribute keys removed."""

        dropped = set(fields)
        if not dropped.intersection(self.attributes):
            return self
        kept = {key: value for key, value in self.attributes.items() if key not in dropped}
        return CanonicalRecord(self.id, self.display_name, kept)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CanonicalRecord":
        """Inverse of :meth:`as_dict`.

        Version 1 state documents stored records flattened as
        ``{id, name, **attributes}``; those are still accepted.
        """

        record_id = str(payload[IDENTITY_FIELD])
        attributes = payload.get(ATTRIBUTES_FIELD)
        if isinstance(attributes, Mapping):
            name = payload.get(DISPLAY_FIELD)
            return cls(record_id, str(name) if name is not None else record_id, dict(attributes))
        name = payload.get(NAME_FIELD)
        legacy = {
            key: value
            for key, value in payload.items()
            if key not in (IDENTITY_FIELD, NAME_FIELD)
        }
        return cls(record_id, str(name) if name is not None else record_id, legacy)


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of scanning one source: records on success, a reason on failure.

    ``configured`` is False only when the source's credential is absent,
    which is a configuration state rather than an operational fault.
    """

    source: str
    ok: bool
    records: tuple[CanonicalRecord, ...] = ()
    raw: Any = field(default=None, repr=False, compare=False)
    reason: str | None = None
    configured: bool = True
    status_code: int | None = None
    attempts: int = 1

    @classmethod
    def success(
        cls,
        source: str,
        records: Iterable[CanonicalRecord],
        raw: Any = None,
        status_code: int | None = None,
    ) -> "Outcome":
        return cls(source=source, ok=True, records=tuple(records), raw=raw, status_code=status_code)

    @classmethod
    def failure(
        cls,
        source: str,
        reason: str,
        *,
        configured: bool = True,
        status_code: int | None = None,
    ) -> "Outcome":
        return cls(
            source=source,
            ok=False,
            reason=reason,
            configured=configured,
            status_code=status_code,
        )

    @property
    def unconfigured(self) -> bool:
        return not self.ok and not self.configured

    @property
    def record_count(self) -> int:
        return len(self.records) if self.ok else 0

    def with_attempts(self, attempts: int) -> "Outcome":
        return Outcome(
            source=self.source,
            ok=self.ok,
            records=self.records,
            raw=self.raw,
            reason=self.reason,
            configured=self.configured,
            status_code=self.status_code,
            attempts=attempts,
        )

    def summary(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "success": self.ok,
            "configured": self.configured,
            "record_count": self.record_count,
            "error": self.reason,
            "status_code": self.status_code,
            "attempts": self.attempts,
        }


__all__ = ["CanonicalRecord", "DISPLAY_NAME_KEYS", "IDENTITY_FIELD", "NAME_FIELD", "Outcome"]
