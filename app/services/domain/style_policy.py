"""
Domain service: visual styling of reports and hotspots.

Style computation is a pure function of entity fields and the
selection/focus flags. Each map view injects its own policy; the reconciler
never decides colors itself.
"""
from abc import ABC, abstractmethod
from typing import Optional

from app.config import settings
from app.domain.models import Hotspot, MapView, Report, ReportStatus
from app.domain.visuals import CircleStyle, MarkerStyle
from app.utils.geometry import parse_numeric


class Palette:
    """Colors shared by all map views."""

    GREEN = "#10B981"
    AMBER = "#F59E0B"
    RED = "#EF4444"
    PURPLE = "#8B5CF6"
    BLUE = "#3B82F6"
    GOLD = "#FFD700"
    WHITE = "white"

    LIGHT_RED = "#F87171"
    DARK_RED = "#B91C1C"


# Severity assumed for an analyzed report whose score is missing
DEFAULT_SEVERITY = 5.0

HIGH_SEVERITY_THRESHOLD = 7.0
MEDIUM_SEVERITY_THRESHOLD = 4.0


def severity_color(severity) -> str:
    """
    Map a 0-10 severity to red, amber or green.

    Args:
        severity: Severity score, possibly a numeric string

    Returns:
        Hex color
    """
    value = parse_numeric(severity)
    if value is None:
        value = DEFAULT_SEVERITY
    if value > HIGH_SEVERITY_THRESHOLD:
        return Palette.RED
    if value > MEDIUM_SEVERITY_THRESHOLD:
        return Palette.AMBER
    return Palette.GREEN


def status_color(status: Optional[str], severity=None) -> str:
    """
    Color of a report marker.

    Status decides first; only analyzed reports are refined by severity.

    Args:
        status: Report status
        severity: Severity score used for analyzed reports

    Returns:
        Hex color
    """
    if status == ReportStatus.RESOLVED.value:
        return Palette.GREEN
    if status == ReportStatus.ANALYZED.value:
        return severity_color(severity)
    if status == ReportStatus.ANALYZING.value:
        return Palette.PURPLE
    return Palette.BLUE


class StylePolicy(ABC):
    """
    Per-view styling rules.

    Reports share one marker scheme across views; hotspot circles differ.
    """

    view: MapView

    def report_style(self, report: Report, is_focused: bool = False) -> MarkerStyle:
        color = status_color(report.status, report.severity_score)
        if is_focused:
            return MarkerStyle(
                color=color,
                size=18,
                border_color=Palette.GOLD,
                border_width=3,
                shadow="0 0 8px rgba(0,0,0,0.5)",
                z_index_offset=1000,
                class_name="custom-marker-icon focused",
            )
        return MarkerStyle(color=color)

    def highlight_style(self) -> CircleStyle:
        return CircleStyle(
            fill_color=Palette.GOLD,
            fill_opacity=0.3,
            color=Palette.GOLD,
            weight=2,
            class_name="pulse-circle",
        )

    @property
    def highlight_radius(self) -> float:
        return settings.map_highlight_radius_meters

    @abstractmethod
    def hotspot_style(self, hotspot: Hotspot, is_selected: bool = False) -> CircleStyle:
        """Style of a hotspot circle, stepped up when selected."""


class OverviewStylePolicy(StylePolicy):
    """Main map: dashed translucent circles alongside report markers."""

    view = MapView.OVERVIEW

    def hotspot_style(self, hotspot: Hotspot, is_selected: bool = False) -> CircleStyle:
        return CircleStyle(
            fill_color=Palette.RED,
            fill_opacity=0.25 if is_selected else 0.15,
            color=Palette.RED,
            weight=2 if is_selected else 1.5,
            dash_array="5, 5",
        )


class HotspotPageStylePolicy(StylePolicy):
    """Hotspots page: solid circles with a darker outline for the selection."""

    view = MapView.HOTSPOTS

    def hotspot_style(self, hotspot: Hotspot, is_selected: bool = False) -> CircleStyle:
        return CircleStyle(
            fill_color=Palette.RED if is_selected else Palette.LIGHT_RED,
            fill_opacity=0.4 if is_selected else 0.2,
            color=Palette.DARK_RED if is_selected else Palette.RED,
            weight=2 if is_selected else 1,
        )


_POLICIES = {
    MapView.OVERVIEW: OverviewStylePolicy,
    MapView.HOTSPOTS: HotspotPageStylePolicy,
}


def get_style_policy(view: MapView) -> StylePolicy:
    """Return a fresh style policy for a map view."""
    return _POLICIES[MapView(view)]()
