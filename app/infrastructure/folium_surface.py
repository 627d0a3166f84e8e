"""
Infrastructure layer: folium-backed map surface.

Leaflet objects in a folium map cannot be detached once added, so this
surface keeps the reconciled scene and builds a fresh folium.Map from it on
every render.
"""
import logging
from typing import Optional

import folium

from app.config import settings
from app.domain.visuals import (
    CenterViewport,
    EntityKind,
    FitBoundsViewport,
    MarkerStyle,
    ViewportRequest,
    VisualEntity,
)
from app.infrastructure.map_surface import MapSurfaceAdapter, validate_fit_points
from app.services.domain.style_policy import Palette
from app.utils.spatial_helpers import bounding_region, is_degenerate

logger = logging.getLogger(__name__)

LEGEND_HTML = f"""
<div style="position: fixed; bottom: 18px; right: 18px; z-index:9999; background: white;
            padding: 10px 12px; border: 1px solid #ccc; border-radius: 6px; font-size: 13px;">
  <b>Map Legend</b><br>
  <span style="display:inline-block;width:10px;height:10px;border-radius:50%;background:{Palette.GREEN};"></span>
  Resolved<br>
  <span style="display:inline-block;width:10px;height:10px;border-radius:50%;background:{Palette.AMBER};"></span>
  Medium Severity<br>
  <span style="display:inline-block;width:10px;height:10px;border-radius:50%;background:{Palette.RED};"></span>
  High Severity<br>
  <span style="display:inline-block;width:10px;height:10px;border-radius:50%;background:{Palette.PURPLE};"></span>
  Analyzing<br>
  <span style="display:inline-block;width:10px;height:10px;border-radius:50%;background:{Palette.BLUE};"></span>
  Pending
</div>
"""


def marker_icon(style: MarkerStyle) -> folium.DivIcon:
    """Round div icon, as drawn by the dashboard's report markers."""
    html = (
        f'<div style="background-color: {style.color}; width: {style.size}px; '
        f"height: {style.size}px; border: {style.border_width}px solid {style.border_color}; "
        f'border-radius: 50%; box-shadow: {style.shadow};"></div>'
    )
    half = style.size // 2
    return folium.DivIcon(
        html=html,
        icon_size=(style.size, style.size),
        icon_anchor=(half, half),
        class_name=style.class_name,
    )


class FoliumMapSurface(MapSurfaceAdapter):
    """Renders the current scene to a standalone HTML document."""

    def __init__(self, show_legend: bool = True, tiles: Optional[str] = None):
        super().__init__()
        self.show_legend = show_legend
        self.tiles = tiles or settings.map_tiles
        self._scene: dict[str, VisualEntity] = {}
        self._viewport: Optional[ViewportRequest] = None

    def upsert_entity(self, key, entity, on_select=None):
        self._ensure_active()
        # Selection is handled by the popup links in the browser
        self._scene[key] = entity

    def remove_entity(self, key):
        self._ensure_active()
        self._scene.pop(key, None)

    def set_viewport(self, request):
        self._ensure_active()
        if isinstance(request, FitBoundsViewport):
            validate_fit_points(request)
        self._viewport = request

    def build_map(self) -> folium.Map:
        """
        Build a folium map of the current scene.

        Returns:
            folium.Map instance
        """
        self._ensure_active()
        viewport = self._viewport or CenterViewport(
            lat=settings.map_default_latitude,
            lng=settings.map_default_longitude,
            zoom=settings.map_default_zoom,
        )

        if isinstance(viewport, CenterViewport):
            m = folium.Map(
                location=[viewport.lat, viewport.lng],
                zoom_start=viewport.zoom,
                tiles=self.tiles,
                control_scale=True,
            )
        else:
            bounds = bounding_region(list(viewport.points))
            if is_degenerate(bounds):
                # Leaflet zooms all the way in on a zero-area box
                south, west, _, _ = bounds
                m = folium.Map(
                    location=[south, west],
                    zoom_start=settings.map_focus_zoom,
                    tiles=self.tiles,
                    control_scale=True,
                )
            else:
                m = folium.Map(
                    location=list(viewport.center),
                    zoom_start=settings.map_default_zoom,
                    tiles=self.tiles,
                    control_scale=True,
                )
                south, west, north, east = bounds
                m.fit_bounds([[south, west], [north, east]], padding=viewport.padding)

        # Circles first so markers stay clickable on top
        ordered = sorted(
            self._scene.values(),
            key=lambda e: (e.kind != EntityKind.CIRCLE, getattr(e.style, "z_index_offset", 0)),
        )
        for entity in ordered:
            self._add_entity(m, entity)

        if self.show_legend:
            m.get_root().html.add_child(folium.Element(LEGEND_HTML))

        logger.debug(f"Built folium map with {len(ordered)} entities")
        return m

    def to_html(self) -> str:
        """Render the current scene as a full HTML document."""
        return self.build_map().get_root().render()

    def _add_entity(self, m: folium.Map, entity: VisualEntity) -> None:
        location = entity.position.as_list()
        popup = folium.Popup(entity.popup_html, max_width=300) if entity.popup_html else None

        if entity.kind == EntityKind.MARKER:
            folium.Marker(
                location=location,
                icon=marker_icon(entity.style),
                popup=popup,
                z_index_offset=entity.style.z_index_offset,
            ).add_to(m)
            return

        style = entity.style
        options = {}
        if style.dash_array:
            options["dash_array"] = style.dash_array
        if style.class_name:
            options["class_name"] = style.class_name
        folium.Circle(
            location=location,
            radius=entity.radius,
            color=style.color,
            weight=style.weight,
            fill=True,
            fill_color=style.fill_color,
            fill_opacity=style.fill_opacity,
            popup=popup,
            **options,
        ).add_to(m)

    def _release(self):
        self._scene.clear()
        self._viewport = None
