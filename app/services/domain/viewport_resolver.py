"""
Domain service: camera placement for a map view.

Resolution is pure: it reads the current entity sets plus selection/focus
state and returns a request for the caller to apply. First matching rule wins:

1. A geometry-valid focused report: center on it at the focus zoom
2. A geometry-valid selected hotspot: center on it at the selection zoom
3. Any visible valid entity: fit bounds over report points and hotspot centres
4. Nothing to show: the default anchor at the default zoom
"""
from dataclasses import dataclass
from typing import Optional, Sequence
import logging

from app.config import settings
from app.domain.models import Hotspot, MapView, Report
from app.domain.visuals import CenterViewport, FitBoundsViewport, ViewportRequest
from app.utils.geometry import LatLng, validate_coordinate
from app.utils.spatial_helpers import mean_center

logger = logging.getLogger(__name__)

# Hotspot page keeps circles away from the map edges
VIEW_PADDING = {
    MapView.HOTSPOTS: (50, 50),
}


@dataclass(frozen=True)
class ViewportConfig:
    """Camera constants for one map view."""

    default_center: tuple[float, float] = (-8.55, 125.56)
    """Service anchor (Dili, Timor-Leste)"""

    default_zoom: int = 11
    focus_zoom: int = 15
    selection_zoom: int = 13

    padding: tuple[int, int] = (30, 30)
    """Pixel padding for fit-to-bounds requests"""

    @classmethod
    def from_settings(cls, padding: Optional[tuple[int, int]] = None) -> "ViewportConfig":
        return cls(
            default_center=(settings.map_default_latitude, settings.map_default_longitude),
            default_zoom=settings.map_default_zoom,
            focus_zoom=settings.map_focus_zoom,
            selection_zoom=settings.map_selection_zoom,
            padding=tuple(padding or settings.map_fit_padding),
        )

    @classmethod
    def for_view(cls, view: MapView) -> "ViewportConfig":
        return cls.from_settings(padding=VIEW_PADDING.get(MapView(view)))

    def default_viewport(self) -> CenterViewport:
        lat, lng = self.default_center
        return CenterViewport(lat=lat, lng=lng, zoom=self.default_zoom)


def report_position(report: Report):
    return validate_coordinate(report.latitude, report.longitude)


def hotspot_position(hotspot: Hotspot):
    return validate_coordinate(hotspot.center_latitude, hotspot.center_longitude)


def valid_hotspot_centers(hotspots: Sequence[Hotspot]) -> list[tuple[float, float]]:
    centers = []
    for hotspot in hotspots:
        position = hotspot_position(hotspot)
        if position.is_valid:
            centers.append((position.lat, position.lng))
    return centers


def hotspot_centroid(hotspots: Sequence[Hotspot]) -> Optional[tuple[float, float]]:
    """
    Unweighted mean of all valid hotspot centres.

    Report density is ignored: a hotspot with two reports pulls the centroid
    as much as one with two hundred.

    Args:
        hotspots: Hotspots to average

    Returns:
        (latitude, longitude), or None when no hotspot has a valid centre
    """
    centers = valid_hotspot_centers(hotspots)
    if not centers:
        return None
    return mean_center(centers)


def find_focused_report(
    reports: Sequence[Report],
    focused_report_id: Optional[int],
) -> Optional[tuple[Report, LatLng]]:
    """Return the focused report and its position if it can be placed."""
    if focused_report_id is None:
        return None
    for report in reports:
        if report.report_id != focused_report_id:
            continue
        position = report_position(report)
        if position.is_valid:
            return report, position
    return None


def resolve_viewport(
    reports: Sequence[Report],
    hotspots: Sequence[Hotspot],
    selected_hotspot: Optional[Hotspot] = None,
    focused_report_id: Optional[int] = None,
    show_reports: bool = True,
    show_hotspots: bool = True,
    config: Optional[ViewportConfig] = None,
) -> ViewportRequest:
    """
    Compute the camera request for the current map state.

    Args:
        reports: Reports in the current snapshot
        hotspots: Hotspots in the current snapshot
        selected_hotspot: Hotspot chosen by the user, if any
        focused_report_id: Report the view is focused on, if any
        show_reports: Whether the report layer is visible
        show_hotspots: Whether the hotspot layer is visible
        config: Camera constants (defaults to application settings)

    Returns:
        CenterViewport or FitBoundsViewport
    """
    config = config or ViewportConfig.from_settings()

    # Rule 1: focused report
    focused = find_focused_report(reports, focused_report_id)
    if focused is not None:
        _, position = focused
        return CenterViewport(lat=position.lat, lng=position.lng, zoom=config.focus_zoom)

    # Rule 2: selected hotspot
    if selected_hotspot is not None:
        position = hotspot_position(selected_hotspot)
        if position.is_valid:
            return CenterViewport(lat=position.lat, lng=position.lng, zoom=config.selection_zoom)

    # Rule 3: fit everything visible
    report_points = []
    if show_reports:
        for report in reports:
            position = report_position(report)
            if position.is_valid:
                report_points.append((position.lat, position.lng))

    hotspot_points = valid_hotspot_centers(hotspots) if show_hotspots else []

    points = report_points + hotspot_points
    if points:
        center = (hotspot_centroid(hotspots) if show_hotspots else None) or mean_center(points)
        logger.debug(f"Fitting viewport to {len(points)} points")
        return FitBoundsViewport(
            points=tuple(points),
            padding=config.padding,
            center=center,
        )

    # Rule 4: default anchor
    return config.default_viewport()
