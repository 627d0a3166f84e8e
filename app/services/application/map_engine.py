"""
Application service: one map view bound to one surface.

Orchestrates the reconciler and the viewport resolver for a surface's whole
lifetime. No business logic here, only sequencing and resource ownership.
"""
from dataclasses import dataclass
from typing import Optional
import logging

from app.domain.models import MapSelection, MapSnapshot
from app.domain.visuals import CenterViewport, FitBoundsViewport, ViewportRequest
from app.infrastructure.map_surface import MapSurfaceAdapter, SurfaceDisposedError
from app.services.domain.entity_reconciler import (
    EntityReconciler,
    ReconcileResult,
    SelectionListener,
)
from app.services.domain.style_policy import StylePolicy
from app.services.domain.viewport_resolver import ViewportConfig, resolve_viewport

logger = logging.getLogger(__name__)


class RefreshInProgressError(RuntimeError):
    """Raised when a refresh starts while another pass is still running."""
    pass


@dataclass
class RefreshOutcome:
    """What one refresh cycle did to the surface."""
    result: ReconcileResult
    viewport: ViewportRequest
    fell_back: bool = False


class MapEngine:
    """
    Geo-entity reconciliation and viewport engine for one surface.

    Use as a context manager to guarantee the surface is released exactly
    once on every exit path:

        with MapEngine(surface, policy) as engine:
            engine.refresh(snapshot, selection)
    """

    def __init__(
        self,
        adapter: MapSurfaceAdapter,
        style_policy: StylePolicy,
        viewport_config: Optional[ViewportConfig] = None,
        on_select: Optional[SelectionListener] = None,
    ):
        """
        Initialize the engine.

        Args:
            adapter: Surface owned by this engine from now on
            style_policy: Styling rules of the view
            viewport_config: Camera constants (defaults to application settings)
            on_select: Called with the report or hotspot when a visual is clicked
        """
        self.adapter = adapter
        self.viewport_config = viewport_config or ViewportConfig.from_settings()
        self.reconciler = EntityReconciler(adapter, style_policy, on_select=on_select)
        self._refreshing = False
        self._disposed = False

    def __enter__(self) -> "MapEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def live_keys(self) -> set[str]:
        return self.reconciler.live_keys

    def refresh(self, snapshot: MapSnapshot, selection: Optional[MapSelection] = None) -> RefreshOutcome:
        """
        Run one refresh cycle to completion.

        Args:
            snapshot: Complete reports/hotspots snapshot
            selection: Selection, focus and layer toggles

        Returns:
            RefreshOutcome with the reconciliation result and applied viewport

        Raises:
            SurfaceDisposedError: If the engine has been disposed
            RefreshInProgressError: If called while a pass is still running
        """
        if self._disposed:
            raise SurfaceDisposedError("Cannot refresh a disposed map engine")
        if self._refreshing:
            raise RefreshInProgressError("A refresh pass is already running on this surface")

        selection = selection or MapSelection()
        self._refreshing = True
        try:
            result = self.reconciler.sync(snapshot, selection)
            viewport = resolve_viewport(
                reports=snapshot.reports,
                hotspots=snapshot.hotspots,
                selected_hotspot=selection.selected_hotspot,
                focused_report_id=selection.focused_report_id,
                show_reports=selection.show_reports,
                show_hotspots=selection.show_hotspots,
                config=self.viewport_config,
            )
            applied, fell_back = self._apply_viewport(viewport)
        finally:
            self._refreshing = False

        logger.info(
            f"Refreshed map: {len(result.live_keys)} live entities "
            f"({result.summary()}), viewport={applied.type}"
        )
        return RefreshOutcome(result=result, viewport=applied, fell_back=fell_back)

    def _apply_viewport(self, viewport: ViewportRequest) -> tuple[ViewportRequest, bool]:
        try:
            self.adapter.set_viewport(viewport)
            return viewport, False
        except ValueError as e:
            # ViewportFitError included
            if not isinstance(viewport, FitBoundsViewport):
                raise
            fallback: CenterViewport = self.viewport_config.default_viewport()
            logger.warning(f"Fit to bounds failed ({e}); falling back to default view")
            self.adapter.set_viewport(fallback)
            return fallback, True

    def dispose(self) -> None:
        """Release every handle and the surface. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        try:
            released = self.reconciler.clear()
            logger.debug(f"Released {len(released)} handles")
        finally:
            self.adapter.dispose()
