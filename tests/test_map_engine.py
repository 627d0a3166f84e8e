"""
Unit tests for the map engine lifecycle.

Tests cover:
- Refresh cycles end to end
- Viewport fallback on fit failures
- Re-entrant refresh rejection
- Exactly-once disposal
"""
import pytest

from app.domain.models import MapSelection, MapSnapshot, Report
from app.domain.visuals import CenterViewport, FitBoundsViewport
from app.infrastructure.map_surface import (
    PatchBufferSurface,
    SurfaceDisposedError,
    ViewportFitError,
)
from app.services.application.map_engine import MapEngine, RefreshInProgressError


class CountingSurface(PatchBufferSurface):
    """Records how many times the surface was released."""

    def __init__(self):
        super().__init__()
        self.release_count = 0

    def _release(self):
        self.release_count += 1
        super()._release()


class NoFitSurface(CountingSurface):
    """Surface whose backend cannot fit bounds."""

    def set_viewport(self, request):
        if isinstance(request, FitBoundsViewport):
            raise ViewportFitError("Map container has no size")
        super().set_viewport(request)


class ReentrantSurface(CountingSurface):
    """Surface that triggers a nested refresh from inside a pass."""

    engine = None

    def upsert_entity(self, key, entity, on_select=None):
        super().upsert_entity(key, entity, on_select)
        if self.engine is not None:
            self.engine.refresh(MapSnapshot())


# ============================================================
# Refresh Tests
# ============================================================

class TestRefresh:
    """Tests for full refresh cycles."""

    def test_refresh_draws_and_positions(self, overview_policy, sample_snapshot):
        surface = CountingSurface()
        engine = MapEngine(surface, overview_policy)

        outcome = engine.refresh(sample_snapshot, MapSelection(focused_report_id=1))

        assert outcome.viewport == CenterViewport(lat=-8.55, lng=125.57, zoom=15)
        assert outcome.fell_back is False
        assert engine.live_keys == {
            "hotspot:10", "hotspot:11", "report:1", "report:1:highlight", "report:2", "report:3",
        }
        assert surface.viewport == outcome.viewport

    def test_refresh_without_selection(self, overview_policy, sample_snapshot):
        engine = MapEngine(CountingSurface(), overview_policy)

        outcome = engine.refresh(sample_snapshot)

        assert isinstance(outcome.viewport, FitBoundsViewport)

    def test_empty_snapshot_uses_default_view(self, overview_policy):
        engine = MapEngine(CountingSurface(), overview_policy)

        outcome = engine.refresh(MapSnapshot())

        assert outcome.viewport == CenterViewport(lat=-8.55, lng=125.56, zoom=11)
        assert engine.live_keys == set()

    def test_fit_failure_falls_back_to_default(self, overview_policy, sample_snapshot):
        surface = NoFitSurface()
        engine = MapEngine(surface, overview_policy)

        outcome = engine.refresh(sample_snapshot)

        assert outcome.fell_back is True
        assert outcome.viewport == CenterViewport(lat=-8.55, lng=125.56, zoom=11)
        assert surface.viewport == outcome.viewport
        assert len(engine.live_keys) == 5

    def test_reentrant_refresh_is_rejected(self, overview_policy):
        surface = ReentrantSurface()
        engine = MapEngine(surface, overview_policy)
        surface.engine = engine

        with pytest.raises(RefreshInProgressError):
            engine.refresh(MapSnapshot(reports=[Report(report_id=1, latitude=-8.5, longitude=125.5)]))

        # The guard is released once the pass unwinds
        surface.engine = None
        engine.refresh(MapSnapshot())
        assert engine.live_keys == set()


# ============================================================
# Disposal Tests
# ============================================================

class TestDispose:
    """Tests for exactly-once surface release."""

    def test_dispose_releases_surface_once(self, overview_policy, sample_snapshot):
        surface = CountingSurface()
        engine = MapEngine(surface, overview_policy)
        engine.refresh(sample_snapshot)

        engine.dispose()
        engine.dispose()

        assert surface.release_count == 1
        assert engine.disposed
        assert engine.live_keys == set()

    def test_dispose_removes_handles_before_release(self, overview_policy, sample_snapshot):
        surface = CountingSurface()
        engine = MapEngine(surface, overview_policy)
        engine.refresh(sample_snapshot)
        surface.drain()
        removed = []
        original_remove = surface.remove_entity

        def spy(key):
            removed.append(key)
            original_remove(key)

        surface.remove_entity = spy

        engine.dispose()

        assert len(removed) == 5

    def test_no_refresh_after_dispose(self, overview_policy, sample_snapshot):
        engine = MapEngine(CountingSurface(), overview_policy)
        engine.dispose()

        with pytest.raises(SurfaceDisposedError):
            engine.refresh(sample_snapshot)

    def test_context_manager_disposes_on_error(self, overview_policy, sample_snapshot):
        surface = CountingSurface()

        with pytest.raises(RuntimeError):
            with MapEngine(surface, overview_policy) as engine:
                engine.refresh(sample_snapshot)
                raise RuntimeError("view unmounted mid-render")

        assert surface.release_count == 1
        assert surface.disposed

    def test_surface_disposed_elsewhere(self, overview_policy, sample_snapshot):
        surface = CountingSurface()
        engine = MapEngine(surface, overview_policy)
        engine.refresh(sample_snapshot)
        surface.dispose()

        engine.dispose()

        assert surface.release_count == 1
