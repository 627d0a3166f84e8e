"""
Domain service: keeps a map surface in sync with the latest snapshot.

Each refresh cycle runs one synchronous pass:
1. Build the visual entities for the snapshot (invalid rows are dropped)
2. Release handles whose identity disappeared, before anything is drawn
3. Update surviving handles in place and create handles for new identities

The handle table is owned by one reconciler instance for the lifetime of
one surface. At most one handle exists per identity key.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional
import logging

from app.domain.models import Hotspot, MapSelection, MapSnapshot, Report
from app.domain.visuals import (
    EntityKind,
    VisualEntity,
    highlight_key,
    hotspot_key,
    report_key,
)
from app.infrastructure.map_surface import MapSurfaceAdapter
from app.services.domain.style_policy import StylePolicy
from app.services.domain.viewport_resolver import hotspot_position, report_position
from app.utils.geometry import normalize_radius
from app.utils.popups import hotspot_popup_html, report_popup_html
from app.config import settings

logger = logging.getLogger(__name__)

SelectionListener = Callable[[Any], None]


@dataclass
class VisualHandle:
    """Reconciler-side record of a drawn entity and its last applied state."""
    key: str
    entity: VisualEntity


@dataclass
class ReconcileResult:
    """Keys touched by one reconciliation pass."""
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def live_keys(self) -> set[str]:
        return set(self.created) | set(self.updated) | set(self.unchanged)

    def summary(self) -> dict:
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "unchanged": len(self.unchanged),
            "removed": len(self.removed),
        }


def _hotspot_entity(
    hotspot: Hotspot,
    style_policy: StylePolicy,
    selected_id: Optional[int],
) -> Optional[VisualEntity]:
    if hotspot.hotspot_id is None:
        return None
    position = hotspot_position(hotspot)
    if not position.is_valid:
        return None

    is_selected = selected_id is not None and hotspot.hotspot_id == selected_id
    return VisualEntity(
        key=hotspot_key(hotspot.hotspot_id),
        kind=EntityKind.CIRCLE,
        position=position,
        radius=normalize_radius(hotspot.radius_meters, settings.map_default_radius_meters),
        style=style_policy.hotspot_style(hotspot, is_selected=is_selected),
        popup_html=hotspot_popup_html(hotspot),
        selectable=True,
        payload=hotspot,
    )


def _report_entities(
    report: Report,
    style_policy: StylePolicy,
    is_focused: bool,
) -> list[VisualEntity]:
    if report.report_id is None:
        return []
    position = report_position(report)
    if not position.is_valid:
        return []

    marker = VisualEntity(
        key=report_key(report.report_id),
        kind=EntityKind.MARKER,
        position=position,
        style=style_policy.report_style(report, is_focused=is_focused),
        popup_html=report_popup_html(report),
        payload=report,
    )
    if not is_focused:
        return [marker]

    ring = VisualEntity(
        key=highlight_key(report.report_id),
        kind=EntityKind.CIRCLE,
        position=position,
        radius=style_policy.highlight_radius,
        style=style_policy.highlight_style(),
        payload=report,
    )
    # Ring under the marker
    return [ring, marker]


def build_entities(
    snapshot: MapSnapshot,
    selection: MapSelection,
    style_policy: StylePolicy,
) -> list[VisualEntity]:
    """
    Project a snapshot onto the visual entities to draw.

    Entities without an id or without a valid position are skipped silently.
    The focused report is always drawn, even with the report layer hidden,
    and is emitted last so it renders above everything else.

    Args:
        snapshot: Reports and hotspots of the current refresh cycle
        selection: Selection, focus and layer toggles
        style_policy: Styling rules of the view

    Returns:
        Entities in draw order
    """
    entities: list[VisualEntity] = []
    selected_id = selection.selected_hotspot.hotspot_id if selection.selected_hotspot else None
    focused_id = selection.focused_report_id

    if selection.show_hotspots:
        for hotspot in snapshot.hotspots:
            entity = _hotspot_entity(hotspot, style_policy, selected_id)
            if entity is not None:
                entities.append(entity)

    focused_entities: list[VisualEntity] = []
    for report in snapshot.reports:
        is_focused = focused_id is not None and report.report_id == focused_id
        if is_focused:
            focused_entities = _report_entities(report, style_policy, is_focused=True)
        elif selection.show_reports:
            entities.extend(_report_entities(report, style_policy, is_focused=False))

    entities.extend(focused_entities)
    return entities


class EntityReconciler:
    """
    Diff-and-patch synchronizer between entity lists and a map surface.

    Not safe for concurrent use: callers serialize passes.
    """

    def __init__(
        self,
        adapter: MapSurfaceAdapter,
        style_policy: StylePolicy,
        on_select: Optional[SelectionListener] = None,
    ):
        """
        Initialize the reconciler.

        Args:
            adapter: Surface receiving create/update/remove calls
            style_policy: Styling rules of the view
            on_select: Called with the report or hotspot when a visual is clicked
        """
        self.adapter = adapter
        self.style_policy = style_policy
        self.on_select = on_select
        self._handles: dict[str, VisualHandle] = {}

    @property
    def live_keys(self) -> set[str]:
        return set(self._handles)

    def get(self, key: str) -> Optional[VisualEntity]:
        handle = self._handles.get(key)
        return handle.entity if handle else None

    def build_entities(self, snapshot: MapSnapshot, selection: MapSelection) -> list[VisualEntity]:
        return build_entities(snapshot, selection, self.style_policy)

    def sync(self, snapshot: MapSnapshot, selection: MapSelection) -> ReconcileResult:
        """Build entities for a snapshot and reconcile them in one pass."""
        return self.reconcile(self.build_entities(snapshot, selection))

    def reconcile(self, entities: Iterable[VisualEntity]) -> ReconcileResult:
        """
        Bring the surface in line with ``entities``.

        Args:
            entities: Entities of the current cycle; on duplicate keys the last one wins

        Returns:
            ReconcileResult listing created, updated, unchanged and removed keys
        """
        incoming: dict[str, VisualEntity] = {}
        for entity in entities:
            incoming[entity.key] = entity

        result = ReconcileResult()

        # Release stale handles before drawing anything new
        for key in [k for k in self._handles if k not in incoming]:
            self.adapter.remove_entity(key)
            del self._handles[key]
            result.removed.append(key)

        for key, entity in incoming.items():
            handle = self._handles.get(key)
            if handle is None:
                self.adapter.upsert_entity(key, entity, on_select=self._select_callback(key))
                self._handles[key] = VisualHandle(key=key, entity=entity)
                result.created.append(key)
            elif handle.entity == entity:
                # Same geometry and style; keep the newest payload for callbacks
                handle.entity = entity
                result.unchanged.append(key)
            else:
                self.adapter.upsert_entity(key, entity)
                handle.entity = entity
                result.updated.append(key)

        logger.debug(f"Reconciled {len(self._handles)} handles: {result.summary()}")
        return result

    def clear(self) -> list[str]:
        """
        Release every handle.

        Returns:
            Keys that were released
        """
        released = list(self._handles)
        for key in released:
            if not self.adapter.disposed:
                self.adapter.remove_entity(key)
        self._handles.clear()
        return released

    def _select_callback(self, key: str) -> Callable[[], None]:
        def dispatch() -> None:
            handle = self._handles.get(key)
            if handle is None or self.on_select is None:
                return
            self.on_select(handle.entity.payload)

        return dispatch
