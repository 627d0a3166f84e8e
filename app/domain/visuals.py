"""
Domain models for what the engine asks a map surface to draw.

These are plain value objects: the reconciler produces them, a map surface
consumes them, and neither side depends on a rendering library.
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from app.utils.geometry import LatLng

REPORT_PREFIX = "report"
HOTSPOT_PREFIX = "hotspot"
HIGHLIGHT_SUFFIX = "highlight"


def report_key(report_id: int) -> str:
    return f"{REPORT_PREFIX}:{report_id}"


def hotspot_key(hotspot_id: int) -> str:
    return f"{HOTSPOT_PREFIX}:{hotspot_id}"


def highlight_key(report_id: int) -> str:
    return f"{report_key(report_id)}:{HIGHLIGHT_SUFFIX}"


@dataclass(frozen=True)
class MarkerStyle:
    """Style of a report marker."""
    color: str
    size: int = 12
    border_color: str = "white"
    border_width: int = 2
    shadow: str = "0 0 4px rgba(0,0,0,0.3)"
    z_index_offset: int = 0
    class_name: str = "custom-marker-icon"


@dataclass(frozen=True)
class CircleStyle:
    """Style of a hotspot circle or a highlight ring."""
    fill_color: str
    fill_opacity: float
    color: str
    weight: float
    dash_array: Optional[str] = None
    class_name: Optional[str] = None


class EntityKind(str, Enum):
    """Kinds of on-surface objects."""
    MARKER = "marker"
    CIRCLE = "circle"


@dataclass(frozen=True)
class VisualEntity:
    """One thing to draw, keyed by a stable identity."""
    key: str
    kind: EntityKind
    position: LatLng
    style: Union[MarkerStyle, CircleStyle]
    radius: Optional[float] = None
    popup_html: str = ""
    selectable: bool = False
    payload: Any = field(default=None, compare=False)

    @property
    def geometry(self) -> tuple:
        """Position and radius, compared to detect moves."""
        return (self.position.lat, self.position.lng, self.radius)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "kind": self.kind.value,
            "position": self.position.as_list(),
            "radius": self.radius,
            "style": asdict(self.style),
            "popup_html": self.popup_html,
            "selectable": self.selectable,
        }


@dataclass(frozen=True)
class CenterViewport:
    """Center the camera on a point at a zoom level."""
    lat: float
    lng: float
    zoom: int

    type = "center"

    def to_dict(self) -> dict:
        return {"type": self.type, "lat": self.lat, "lng": self.lng, "zoom": self.zoom}


@dataclass(frozen=True)
class FitBoundsViewport:
    """
    Fit the camera to every listed point.

    ``center`` is the mean of the hotspot centres (or of all points when no
    hotspot is visible) for surfaces that need an initial location before
    they can fit.
    """
    points: tuple[tuple[float, float], ...]
    padding: tuple[int, int]
    center: tuple[float, float]

    type = "fitBounds"

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "points": [list(point) for point in self.points],
            "padding": list(self.padding),
        }


ViewportRequest = Union[CenterViewport, FitBoundsViewport]
