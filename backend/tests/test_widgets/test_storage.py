"""Tests for the in-memory widget store and its snapshot history."""

import json

import pytest

from sketchgraph.models.widgets import WidgetType
from sketchgraph.widgets.errors import WidgetError, WidgetErrorCode
from sketchgraph.widgets.factory import build_widget
from sketchgraph.widgets.storage import WidgetStorage


def _map(element_id="m", text="[MAP: zoom: 8]"):
    return build_widget(WidgetType.MAP, element_id, text)


@pytest.fixture
def storage():
    return WidgetStorage()


def test_set_and_get(storage):
    storage.set("m", _map())
    widget = storage.get("m")
    assert widget.config.zoom == 8
    assert storage.has("m")
    assert storage.count() == 1
    assert storage.get("missing") is None


def test_set_rebinds_element_id(storage):
    storage.set("other", _map("m"))
    assert storage.get("other").element_id == "other"


def test_set_rejects_invalid_widget_without_touching_state(storage):
    video = build_widget(WidgetType.VIDEO, "v", "video demo")
    with pytest.raises(WidgetError) as exc:
        storage.set("v", video)

    assert exc.value.code == WidgetErrorCode.STORAGE_ERROR
    assert exc.value.widget_type == WidgetType.VIDEO
    assert "Video widget must have a URL" in exc.value.message
    assert storage.count() == 0
    assert storage.get_history() == []


def test_delete(storage):
    storage.set("m", _map())
    assert storage.delete("m")
    assert not storage.has("m")
    assert not storage.delete("m")


def test_clear_keeps_a_snapshot(storage):
    storage.set("m", _map())
    storage.clear()
    assert storage.count() == 0
    assert storage.get_history()[-1].operation == "clear"


def test_duplicate(storage):
    storage.set("m", _map())
    assert storage.duplicate("m", "copy")
    copy = storage.get("copy")
    assert copy.element_id == "copy"
    assert copy.config == storage.get("m").config
    assert not storage.duplicate("missing", "x")


def test_update_merges_config_keys(storage):
    storage.set("m", _map())
    before = storage.get("m")

    assert storage.update("m", {"title": "Office", "config": {"zoom": 5}})
    after = storage.get("m")
    assert after.title == "Office"
    assert after.config.zoom == 5
    assert after.config.center == before.config.center
    assert after.updated_at >= before.updated_at


def test_update_rejects_invalid_values(storage):
    storage.set("m", _map())
    assert not storage.update("m", {"config": {"zoom": 50}})
    assert not storage.update("m", {"config": {"zoom": "far"}})
    assert storage.get("m").config.zoom == 8
    assert not storage.update("missing", {"title": "x"})


def test_query_by_type(storage):
    storage.set("m", _map())
    storage.set("c", build_widget(WidgetType.CHART, "c", "[CHART: bar]"))
    assert set(storage.get_by_type(WidgetType.CHART)) == {"c"}
    assert set(storage.get_all()) == {"m", "c"}


def test_get_all_is_a_copy(storage):
    storage.set("m", _map())
    everything = storage.get_all()
    everything.clear()
    assert storage.count() == 1


def test_snapshot_and_restore(storage):
    storage.set("m", _map())
    snapshot_id = storage.save_snapshot()
    storage.set("c", build_widget(WidgetType.CHART, "c", "[CHART]"))
    storage.delete("m")

    assert storage.restore_snapshot(snapshot_id)
    assert set(storage.get_all()) == {"m"}
    assert storage.get_history()[-1].operation == "restore"
    assert not storage.restore_snapshot("snapshot-nope")


def test_snapshots_are_not_affected_by_later_mutations(storage):
    storage.set("m", _map())
    snapshot_id = storage.save_snapshot()
    storage.update("m", {"title": "Changed"})

    snapshot = next(s for s in storage.get_history() if s.id == snapshot_id)
    assert snapshot.data["m"].title != "Changed"


def test_duplicate_is_independent_of_its_source(storage):
    storage.set("a", build_widget(WidgetType.CHART, "a", "[CHART: bar]"))
    before = storage.get("a")
    assert storage.duplicate("a", "b")

    assert storage.update("b", {"title": "Copy", "config": {"chart_type": "pie"}})
    storage.get("b").config.options["color"] = "red"

    assert storage.get("a") == before
    assert storage.get("a").config.options == {}
    assert storage.get("b").config.options == {}
    assert storage.get("b").config.chart_type == "pie"


def test_restore_undoes_in_place_edits_on_returned_widgets(storage):
    storage.set("a", build_widget(WidgetType.CHART, "a", "[CHART: bar]"))
    before = storage.get("a")
    snapshot_id = storage.save_snapshot()

    storage.get("a").config.options["color"] = "red"
    for snapshot in storage.get_history():
        for widget in snapshot.data.values():
            widget.config.options["stale"] = True
    storage.update("a", {"title": "Changed"})

    assert storage.restore_snapshot(snapshot_id)
    assert storage.get("a") == before


def test_history_is_bounded():
    storage = WidgetStorage(max_history=3)
    for i in range(10):
        storage.set(f"m{i}", _map())
    history = storage.get_history()
    assert len(history) == 3
    assert history[-1].element_id == "m9"


def test_snapshot_ids_are_unique(storage):
    ids = {storage.save_snapshot() for _ in range(20)}
    assert len(ids) == 20


def test_sync_with_element_update(storage):
    storage.set("m", _map())
    assert storage.sync_with_element_update("m", {"text": "New label"})
    assert storage.get("m").title == "New label"
    assert not storage.sync_with_element_update("missing", {"text": "x"})


def test_cleanup_deleted_elements(storage):
    for eid in ("a", "b", "c"):
        storage.set(eid, _map(eid))
    assert storage.cleanup_deleted_elements(["b"]) == 2
    assert set(storage.get_all()) == {"b"}


def test_serialize_round_trip(storage):
    storage.set("m", _map())
    storage.set("c", build_widget(WidgetType.CHART, "c", "[CHART: pie]"))
    data = storage.serialize()

    payload = json.loads(data)
    assert payload["version"] == "1.0.0"
    assert payload["metadata"]["totalWidgets"] == 2

    restored = WidgetStorage()
    assert restored.deserialize(data)
    assert restored.get_all() == storage.get_all()
    assert len(restored.get_history()) == len(payload["snapshots"])


def test_export_keeps_the_last_ten_snapshots(storage):
    for i in range(15):
        storage.save_snapshot()
    assert len(json.loads(storage.serialize())["snapshots"]) == 10


@pytest.mark.parametrize("data", ["not json", "[]", '{"widgets": {}}', '{"version": "1", "widgets": {"m": {"type": "map"}}}'])
def test_deserialize_failure_leaves_state_untouched(storage, data):
    storage.set("m", _map())
    assert not storage.deserialize(data)
    assert set(storage.get_all()) == {"m"}


def test_statistics(storage):
    storage.set("m", _map())
    storage.set("c", build_widget(WidgetType.CHART, "c", "[CHART]"))
    stats = storage.get_statistics()

    assert stats["total_widgets"] == 2
    assert stats["widgets_by_type"]["map"] == 1
    assert stats["widgets_by_type"]["video"] == 0
    assert stats["snapshot_count"] == 2
    assert stats["memory_usage"] > 0
    assert stats["oldest_widget"] in {"m", "c"}


def test_statistics_when_empty(storage):
    stats = storage.get_statistics()
    assert stats["total_widgets"] == 0
    assert stats["average_age_ms"] == 0.0
    assert stats["oldest_widget"] is None
