from __future__ import annotations

from model_watcher.config import DEFAULT_VOLATILE_FIELDS
from model_watcher.engine.adapters import normalize
from model_watcher.engine.differ import FieldChange, diff
from model_watcher.engine.records import CanonicalRecord


def test_identical_sets_produce_empty_delta(make_record) -> None:
    records = [make_record("a", owner="x", tags=["chat"]), make_record("b", limits={"ctx": 8})]
    delta = diff(records, records)
    assert delta.is_empty
    assert delta.summary.as_dict() == {"added": 0, "removed": 0, "updated": 0}


def test_added_and_removed_are_mirror_images(make_record) -> None:
    left = [make_record("a"), make_record("b"), make_record("c")]
    right = [make_record("b"), make_record("d"), make_record("e")]
    forward = diff(left, right)
    backward = diff(right, left)
    assert [r.id for r in forward.added] == [r.id for r in backward.removed] == ["d", "e"]
    assert [r.id for r in forward.removed] == [r.id for r in backward.added] == ["a", "c"]


def test_first_scan_reports_everything_added(make_record) -> None:
    delta = diff(None, [make_record("a"), make_record("b")])
    assert [r.id for r in delta.added] == ["a", "b"]
    assert delta.removed == ()
    assert delta.updated == ()


def test_field_level_update(make_record) -> None:
    delta = diff([make_record("a", owner="x")], [make_record("a", owner="y")])
    assert len(delta.updated) == 1
    update = delta.updated[0]
    assert update.record.id == "a"
    assert update.changes == {"owner": FieldChange("x", "y")}
    assert delta.as_dict()["updated"][0]["changes"] == {"owner": {"old": "x", "new": "y"}}


def test_volatile_fields_never_count_as_updates(make_record) -> None:
    stored = [make_record("a", owner="x")]
    fresh = [make_record("a", owner="x", created=1714560000, modified_at="2024-05-01")]
    assert diff(stored, fresh, DEFAULT_VOLATILE_FIELDS).is_empty

    without_ignore = diff(stored, fresh)
    assert without_ignore.updated[0].changed_fields == ["created", "modified_at"]
    assert without_ignore.updated[0].changes["created"] == FieldChange(None, 1714560000)


def test_update_reports_current_record_and_sorted_keys(make_record) -> None:
    previous = [make_record("a", zeta=1, alpha=1, created=1)]
    current = [make_record("a", zeta=2, alpha=2, created=2)]
    update = diff(previous, current, ["created"]).updated[0]
    assert list(update.changes) == ["alpha", "zeta"]
    assert update.record.attributes["created"] == 2


def test_missing_key_on_one_side_is_a_change(make_record) -> None:
    delta = diff([make_record("a", beta=True)], [make_record("a", pricing={"in": 1})])
    assert delta.updated[0].changes == {
        "beta": FieldChange(True, None),
        "pricing": FieldChange(None, {"in": 1}),
    }


def test_deep_equality_rules(make_record) -> None:
    same = diff(
        [make_record("a", limits={"ctx": 8, "out": [1, 2]}, price=1)],
        [make_record("a", limits={"out": [1, 2], "ctx": 8}, price=1.0)],
    )
    assert same.is_empty

    changed = diff([make_record("a", flag=1)], [make_record("a", flag=True)])
    assert changed.updated[0].changes == {"flag": FieldChange(1, True)}

    nested = diff(
        [make_record("a", limits={"ctx": 8})], [make_record("a", limits={"ctx": 16})]
    )
    assert nested.updated[0].changes["limits"] == FieldChange({"ctx": 8}, {"ctx": 16})


def test_display_name_change_reported_as_name(make_record) -> None:
    delta = diff([make_record("a", name="Old")], [make_record("a", name="New")])
    assert delta.updated[0].changes == {"name": FieldChange("Old", "New")}


def test_identity_is_case_sensitive(make_record) -> None:
    delta = diff([make_record("GPT-4")], [make_record("gpt-4")])
    assert [r.id for r in delta.added] == ["gpt-4"]
    assert [r.id for r in delta.removed] == ["GPT-4"]


def test_provider_name_change_with_stable_display_name(sample_source_config) -> None:
    source = sample_source_config()
    before = normalize({"data": [{"id": "m", "name": "alpha", "display_name": "Model"}]}, source)
    after = normalize({"data": [{"id": "m", "name": "beta", "display_name": "Model"}]}, source)
    stored = [CanonicalRecord.from_dict(record.as_dict()) for record in before]

    delta = diff(stored, after)
    assert delta.updated[0].changes == {"name": FieldChange("alpha", "beta")}


def test_provider_id_distinct_from_identity_is_compared(sample_source_config) -> None:
    source = sample_source_config()
    before = normalize({"models": [{"name": "a", "id": "internal-7"}]}, source)
    after = normalize({"models": [{"name": "a", "id": "internal-8"}]}, source)
    assert diff(before, after).updated[0].changes == {"id": FieldChange("internal-7", "internal-8")}
