"""
Unit tests for entity reconciliation.

Tests cover:
- Entity building and silent exclusion of invalid rows
- Identity-keyed create/update/remove
- Idempotency
- Removal ordering
- Focus ring and draw order
- Selection callbacks
"""
import pytest
from unittest.mock import MagicMock

from app.domain.models import Hotspot, MapSelection, MapSnapshot, Report
from app.domain.visuals import EntityKind
from app.services.domain.entity_reconciler import EntityReconciler, build_entities


@pytest.fixture
def reconciler(surface, overview_policy) -> EntityReconciler:
    return EntityReconciler(surface, overview_policy)


# ============================================================
# Entity Building Tests
# ============================================================

class TestBuildEntities:
    """Tests for projecting snapshots onto visual entities."""

    def test_keys(self, sample_snapshot, overview_policy):
        entities = build_entities(sample_snapshot, MapSelection(), overview_policy)

        assert [e.key for e in entities] == [
            "hotspot:10", "hotspot:11", "report:1", "report:2", "report:3",
        ]

    def test_invalid_geometry_and_missing_ids_are_dropped(self, overview_policy):
        snapshot = MapSnapshot(
            reports=[
                Report(report_id=1, latitude=-8.55, longitude=125.57),
                Report(report_id=2, latitude=None, longitude=125.58),
                Report(report_id=None, latitude=-8.55, longitude=125.57),
                Report(report_id=4, latitude="north", longitude=125.57),
            ],
            hotspots=[
                Hotspot(hotspot_id=None, center_latitude=-8.5, center_longitude=125.5),
                Hotspot(hotspot_id=6, center_latitude=-8.5, center_longitude=200),
            ],
        )

        entities = build_entities(snapshot, MapSelection(), overview_policy)

        assert [e.key for e in entities] == ["report:1"]

    def test_hotspot_radius_is_normalized(self, sample_snapshot, overview_policy):
        entities = {e.key: e for e in build_entities(sample_snapshot, MapSelection(), overview_policy)}

        assert entities["hotspot:10"].radius == 300.0
        assert entities["hotspot:11"].radius == 500.0

    def test_layer_toggles(self, sample_snapshot, overview_policy):
        no_reports = build_entities(sample_snapshot, MapSelection(show_reports=False), overview_policy)
        no_hotspots = build_entities(sample_snapshot, MapSelection(show_hotspots=False), overview_policy)

        assert {e.kind for e in no_reports} == {EntityKind.CIRCLE}
        assert {e.kind for e in no_hotspots} == {EntityKind.MARKER}

    def test_focused_report_is_last_with_ring_beneath(self, sample_snapshot, overview_policy):
        entities = build_entities(sample_snapshot, MapSelection(focused_report_id=1), overview_policy)

        assert [e.key for e in entities[-2:]] == ["report:1:highlight", "report:1"]
        ring, marker = entities[-2:]
        assert ring.kind == EntityKind.CIRCLE
        assert ring.radius == 50.0
        assert marker.style.z_index_offset == 1000

    def test_focused_report_survives_hidden_layer(self, sample_snapshot, overview_policy):
        selection = MapSelection(focused_report_id=2, show_reports=False, show_hotspots=False)

        entities = build_entities(sample_snapshot, selection, overview_policy)

        assert [e.key for e in entities] == ["report:2:highlight", "report:2"]

    def test_selected_hotspot_style(self, sample_snapshot, sample_hotspots, overview_policy):
        selection = MapSelection(selected_hotspot=sample_hotspots[0])

        entities = {e.key: e for e in build_entities(sample_snapshot, selection, overview_policy)}

        assert entities["hotspot:10"].style.fill_opacity == 0.25
        assert entities["hotspot:11"].style.fill_opacity == 0.15


# ============================================================
# Reconciliation Tests
# ============================================================

class TestReconcile:
    """Tests for diff-and-patch against the surface."""

    def test_end_to_end_scenario(self, reconciler, surface):
        snapshot = MapSnapshot(reports=[
            Report(report_id=1, latitude=-8.55, longitude=125.57),
            Report(report_id=2, latitude=None, longitude=125.58),
        ])

        reconciler.sync(snapshot, MapSelection())

        assert reconciler.live_keys == {"report:1"}
        assert set(surface.scene) == {"report:1"}

    def test_first_pass_creates_everything(self, reconciler, sample_snapshot):
        result = reconciler.sync(sample_snapshot, MapSelection())

        assert len(result.created) == 5
        assert result.updated == result.removed == result.unchanged == []

    def test_idempotent(self, reconciler, surface, sample_snapshot):
        reconciler.sync(sample_snapshot, MapSelection())
        surface.drain()
        before = surface.scene

        result = reconciler.sync(sample_snapshot, MapSelection())

        assert surface.drain() == []
        assert surface.scene == before
        assert len(result.unchanged) == 5
        assert result.created == result.updated == result.removed == []

    def test_no_orphans_after_removal(self, reconciler, surface, sample_snapshot, sample_reports):
        reconciler.sync(sample_snapshot, MapSelection())

        reconciler.sync(MapSnapshot(reports=sample_reports[:1]), MapSelection())

        assert reconciler.live_keys == {"report:1"}
        assert set(surface.scene) == {"report:1"}

    def test_removals_happen_before_creations(self, reconciler, surface):
        reconciler.sync(MapSnapshot(reports=[Report(report_id=1, latitude=-8.5, longitude=125.5)]), MapSelection())
        surface.drain()

        reconciler.sync(MapSnapshot(reports=[Report(report_id=2, latitude=-8.6, longitude=125.6)]), MapSelection())

        assert [(op["op"], op["key"]) for op in surface.drain()] == [
            ("remove", "report:1"),
            ("upsert", "report:2"),
        ]

    def test_moved_entity_is_updated_in_place(self, reconciler, surface):
        reconciler.sync(MapSnapshot(reports=[Report(report_id=1, latitude=-8.5, longitude=125.5)]), MapSelection())
        surface.drain()

        result = reconciler.sync(
            MapSnapshot(reports=[Report(report_id=1, latitude=-8.51, longitude=125.5)]),
            MapSelection(),
        )

        assert result.updated == ["report:1"]
        assert result.removed == []
        assert surface.scene["report:1"].position.lat == -8.51

    def test_restyle_on_status_change(self, reconciler, surface):
        reconciler.sync(MapSnapshot(reports=[Report(report_id=1, latitude=-8.5, longitude=125.5)]), MapSelection())

        result = reconciler.sync(
            MapSnapshot(reports=[Report(report_id=1, latitude=-8.5, longitude=125.5, status="resolved")]),
            MapSelection(),
        )

        assert result.updated == ["report:1"]
        assert surface.scene["report:1"].style.color == "#10B981"

    def test_invalid_update_removes_existing_handle(self, reconciler, surface):
        reconciler.sync(MapSnapshot(reports=[Report(report_id=1, latitude=-8.5, longitude=125.5)]), MapSelection())

        result = reconciler.sync(
            MapSnapshot(reports=[Report(report_id=1, latitude=None, longitude=125.5)]),
            MapSelection(),
        )

        assert result.removed == ["report:1"]
        assert surface.scene == {}

    def test_duplicate_keys_last_wins(self, reconciler, surface):
        snapshot = MapSnapshot(reports=[
            Report(report_id=1, latitude=-8.5, longitude=125.5),
            Report(report_id=1, latitude=-8.6, longitude=125.6),
        ])

        result = reconciler.sync(snapshot, MapSelection())

        assert result.created == ["report:1"]
        assert surface.scene["report:1"].position.lat == -8.6

    def test_focus_change_moves_ring(self, reconciler, surface, sample_snapshot):
        reconciler.sync(sample_snapshot, MapSelection(focused_report_id=1))

        result = reconciler.sync(sample_snapshot, MapSelection(focused_report_id=2))

        assert "report:1:highlight" in result.removed
        assert "report:2:highlight" in result.created
        assert set(result.updated) == {"report:1", "report:2"}
        assert "report:1:highlight" not in surface.scene

    def test_clear_releases_everything(self, reconciler, surface, sample_snapshot):
        reconciler.sync(sample_snapshot, MapSelection())

        released = reconciler.clear()

        assert len(released) == 5
        assert reconciler.live_keys == set()
        assert surface.scene == {}

    def test_clear_after_surface_disposed(self, reconciler, surface, sample_snapshot):
        reconciler.sync(sample_snapshot, MapSelection())
        surface.dispose()

        assert len(reconciler.clear()) == 5
        assert reconciler.live_keys == set()


# ============================================================
# Selection Callback Tests
# ============================================================

class TestSelection:
    """Tests for click dispatch through the surface."""

    def test_click_dispatches_payload(self, surface, overview_policy, sample_snapshot, sample_hotspots):
        on_select = MagicMock()
        reconciler = EntityReconciler(surface, overview_policy, on_select=on_select)
        reconciler.sync(sample_snapshot, MapSelection())

        assert surface.select("hotspot:10")

        on_select.assert_called_once_with(sample_hotspots[0])

    def test_click_receives_latest_payload(self, surface, overview_policy):
        on_select = MagicMock()
        reconciler = EntityReconciler(surface, overview_policy, on_select=on_select)
        reconciler.sync(
            MapSnapshot(reports=[Report(report_id=1, latitude=-8.5, longitude=125.5, description="old")]),
            MapSelection(),
        )
        reconciler.sync(
            MapSnapshot(reports=[Report(report_id=1, latitude=-8.5, longitude=125.5, description="new")]),
            MapSelection(),
        )

        surface.select("report:1")

        assert on_select.call_args.args[0].description == "new"

    def test_click_on_removed_entity_is_ignored(self, surface, overview_policy, sample_snapshot):
        on_select = MagicMock()
        reconciler = EntityReconciler(surface, overview_policy, on_select=on_select)
        reconciler.sync(sample_snapshot, MapSelection())
        reconciler.sync(MapSnapshot(), MapSelection())

        assert not surface.select("hotspot:10")
        on_select.assert_not_called()
