"""
Unit tests for per-view style policies.
"""
import pytest

from app.domain.models import Hotspot, MapView, Report
from app.services.domain.style_policy import (
    HotspotPageStylePolicy,
    OverviewStylePolicy,
    Palette,
    get_style_policy,
    severity_color,
    status_color,
)


# ============================================================
# Color Rule Tests
# ============================================================

class TestStatusColor:
    """Tests for report marker colors."""

    @pytest.mark.parametrize("status, severity, expected", [
        ("resolved", 9, Palette.GREEN),
        ("analyzed", 8, Palette.RED),
        ("analyzed", "7.5", Palette.RED),
        ("analyzed", 7, Palette.AMBER),
        ("analyzed", 5, Palette.AMBER),
        ("analyzed", 4, Palette.GREEN),
        ("analyzing", 9, Palette.PURPLE),
        ("pending", 9, Palette.BLUE),
        ("rejected", None, Palette.BLUE),
        (None, None, Palette.BLUE),
    ])
    def test_status_color(self, status, severity, expected):
        assert status_color(status, severity) == expected

    def test_missing_severity_defaults_to_medium(self):
        assert severity_color(None) == Palette.AMBER
        assert severity_color("n/a") == Palette.AMBER


# ============================================================
# Policy Tests
# ============================================================

class TestReportStyle:
    """Tests for marker styles shared by both views."""

    def test_regular_marker(self, overview_policy):
        style = overview_policy.report_style(Report(report_id=1, status="pending"))

        assert style.size == 12
        assert style.border_color == "white"
        assert style.z_index_offset == 0

    def test_focused_marker_is_raised_and_gold(self, overview_policy):
        style = overview_policy.report_style(
            Report(report_id=1, status="analyzed", severity_score=9),
            is_focused=True,
        )

        assert style.color == Palette.RED
        assert style.size == 18
        assert style.border_color == Palette.GOLD
        assert style.border_width == 3
        assert style.z_index_offset == 1000

    def test_highlight_ring(self, hotspot_policy):
        style = hotspot_policy.highlight_style()

        assert style.color == Palette.GOLD
        assert style.class_name == "pulse-circle"
        assert hotspot_policy.highlight_radius == 50.0


class TestHotspotStyle:
    """Tests for view-specific hotspot circles."""

    def test_overview_circles_are_dashed(self, overview_policy):
        hotspot = Hotspot(hotspot_id=1)

        regular = overview_policy.hotspot_style(hotspot)
        selected = overview_policy.hotspot_style(hotspot, is_selected=True)

        assert regular.dash_array == "5, 5"
        assert regular.fill_opacity == 0.15
        assert regular.weight == 1.5
        assert selected.fill_opacity == 0.25
        assert selected.weight == 2

    def test_hotspot_page_selection_is_darker(self, hotspot_policy):
        hotspot = Hotspot(hotspot_id=1)

        regular = hotspot_policy.hotspot_style(hotspot)
        selected = hotspot_policy.hotspot_style(hotspot, is_selected=True)

        assert regular.dash_array is None
        assert (regular.fill_color, regular.fill_opacity, regular.color) == (Palette.LIGHT_RED, 0.2, Palette.RED)
        assert (selected.fill_color, selected.fill_opacity, selected.color) == (Palette.RED, 0.4, Palette.DARK_RED)

    def test_policy_lookup(self):
        assert isinstance(get_style_policy(MapView.OVERVIEW), OverviewStylePolicy)
        assert isinstance(get_style_policy("hotspots"), HotspotPageStylePolicy)
