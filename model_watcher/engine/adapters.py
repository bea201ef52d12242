"""Normalise divergent catalog payloads into canonical records.

Each supported payload family is a :class:`ShapeMatcher`: a predicate over the
raw JSON plus a mapper for a single item. Matchers are tried in registration
order and the first one that accepts the payload wins. A provider with a new
format gets a new matcher; existing matchers never grow provider branches.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Mapping

from ..config import SourceConfig
from .records import DISPLAY_NAME_KEYS, CanonicalRecord

ItemMapper = Callable[[Any, Any], "CanonicalRecord | None"]


@dataclass(frozen=True, slots=True)
class ShapeMatcher:
    """Recognise one payload family and map its items."""

    name: str
    matches: Callable[[Any, SourceConfig], bool]
    items: Callable[[Any], Iterable[tuple[Any, Any]]]
    mapper: ItemMapper


def _record_id(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


def _display_name(item: Mapping[str, Any], record_id: str) -> str:
    for key in DISPLAY_NAME_KEYS:
        name = item.get(key)
        if isinstance(name, str) and name.strip():
            return name
    return record_id


def _build(item: Any, record_id: Any) -> CanonicalRecord | None:
    if not isinstance(item, Mapping):
        return None
    resolved = _record_id(record_id)
    if resolved is None:
        return None
    return CanonicalRecord(resolved, _display_name(item, resolved), dict(item))


def _by_id(_key: Any, item: Any) -> CanonicalRecord | None:
    return _build(item, item.get("id") if isinstance(item, Mapping) else None)


def _by_name_or_id(_key: Any, item: Any) -> CanonicalRecord | None:
    if not isinstance(item, Mapping):
        return None
    return _build(item, item.get("name") or item.get("id"))


def _by_id_or_name(_key: Any, item: Any) -> CanonicalRecord | None:
    if not isinstance(item, Mapping):
        return None
    return _build(item, item.get("id") or item.get("name"))


def _by_key(key: Any, item: Any) -> CanonicalRecord | None:
    if not isinstance(item, Mapping):
        return None
    return _build(item, item.get("id") or key)


def _enumerate(values: Iterable[Any]) -> Iterator[tuple[Any, Any]]:
    return ((None, value) for value in values)


def _nested_list(key: str) -> Callable[[Any, SourceConfig], bool]:
    def _matches(payload: Any, _source: SourceConfig) -> bool:
        return isinstance(payload, Mapping) and isinstance(payload.get(key), list)

    return _matches


def _is_object_map(payload: Any, _source: SourceConfig) -> bool:
    return (
        isinstance(payload, Mapping)
        and bool(payload)
        and all(isinstance(value, Mapping) for value in payload.values())
    )


_REGISTRY: list[ShapeMatcher] = [
    # GitHub Models: bare list, display name in "name"
    ShapeMatcher(
        name="github_catalog",
        matches=lambda payload, source: source.provider == "github" and isinstance(payload, list),
        items=_enumerate,
        mapper=_by_id_or_name,
    ),
    # OpenAI and compatible ({"object": "list", "data": [...]})
    ShapeMatcher(
        name="data_list",
        matches=_nested_list("data"),
        items=lambda payload: _enumerate(payload["data"]),
        mapper=_by_id,
    ),
    # Ollama / Cohere / Gemini ({"models": [...]}) keyed by "name"
    ShapeMatcher(
        name="models_list",
        matches=_nested_list("models"),
        items=lambda payload: _enumerate(payload["models"]),
        mapper=_by_name_or_id,
    ),
    ShapeMatcher(
        name="bare_list",
        matches=lambda payload, _source: isinstance(payload, list),
        items=_enumerate,
        mapper=_by_id_or_name,
    ),
    ShapeMatcher(
        name="object_map",
        matches=_is_object_map,
        items=lambda payload: payload.items(),
        mapper=_by_key,
    ),
]


def register_shape(matcher: ShapeMatcher, *, before: str | None = None) -> None:
    """Add a matcher, optionally ahead of an existing one."""

    if any(existing.name == matcher.name for existing in _REGISTRY):
        raise ValueError(f"Shape matcher already registered: {matcher.name}")
    if before is None:
        _REGISTRY.append(matcher)
        return
    for index, existing in enumerate(_REGISTRY):
        if existing.name == before:
            _REGISTRY.insert(index, matcher)
            return
    raise KeyError(before)


def registered_shapes() -> list[str]:
    return [matcher.name for matcher in _REGISTRY]


def detect_shape(payload: Any, source: SourceConfig) -> ShapeMatcher | None:
    for matcher in _REGISTRY:
        if matcher.matches(payload, source):
            return matcher
    return None


def normalize(payload: Any, source: SourceConfig) -> list[CanonicalRecord]:
    """Map a raw catalog payload to records sorted by id.

    Unrecognised shapes, non-object items and items without an id are
    dropped rather than failing the source. Duplicate ids keep their first
    occurrence.
    """

    matcher = detect_shape(payload, source)
    if matcher is None:
        return []
    records: dict[str, CanonicalRecord] = {}
    for key, item in matcher.items(payload):
        record = matcher.mapper(key, item)
        if record is not None and record.id not in records:
            records[record.id] = record
    return sorted(records.values(), key=lambda record: record.id)


__all__ = [
    "ShapeMatcher",
    "detect_shape",
    "normalize",
    "register_shape",
    "registered_shapes",
]
