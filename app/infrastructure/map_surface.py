"""
Infrastructure layer: map surfaces the engine draws on.

A surface is the only place allowed to touch a rendering backend. The
engine talks to the abstract interface below, so a surface can be swapped
without touching reconciliation or viewport logic.
"""
import logging
import math
from abc import ABC, abstractmethod
from typing import Callable, Optional

from app.domain.visuals import FitBoundsViewport, ViewportRequest, VisualEntity

logger = logging.getLogger(__name__)

SelectCallback = Callable[[], None]


class SurfaceDisposedError(RuntimeError):
    """Raised when a disposed surface is asked to mutate."""
    pass


class ViewportFitError(ValueError):
    """Raised when a surface cannot honour a fit-to-bounds request."""
    pass


def validate_fit_points(request: FitBoundsViewport) -> None:
    """
    Reject fit requests no camera can satisfy.

    Raises:
        ViewportFitError: If the point list is empty or holds non-finite values
    """
    if not request.points:
        raise ViewportFitError("Cannot fit bounds of an empty point list")
    for lat, lng in request.points:
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise ViewportFitError(f"Cannot fit bounds with non-finite point ({lat}, {lng})")


class MapSurfaceAdapter(ABC):
    """
    Stateful rendering surface.

    Acquired once per mounted view and released exactly once through
    ``dispose``. Mutations after disposal raise SurfaceDisposedError.
    """

    def __init__(self):
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _ensure_active(self) -> None:
        if self._disposed:
            raise SurfaceDisposedError(f"{type(self).__name__} has been disposed")

    @abstractmethod
    def upsert_entity(
        self,
        key: str,
        entity: VisualEntity,
        on_select: Optional[SelectCallback] = None,
    ) -> None:
        """
        Create the visual for ``key`` or move/restyle it in place.

        Args:
            key: Stable identity key
            entity: What to draw
            on_select: Click callback; None keeps the callback already registered
        """

    @abstractmethod
    def remove_entity(self, key: str) -> None:
        """Release the visual registered under ``key``."""

    @abstractmethod
    def set_viewport(self, request: ViewportRequest) -> None:
        """
        Apply a camera request.

        Raises:
            ViewportFitError: If a fit-to-bounds request cannot be honoured
        """

    def dispose(self) -> None:
        """Release all resources. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        self._release()
        logger.debug(f"Disposed {type(self).__name__}")

    def _release(self) -> None:
        """Backend-specific cleanup, run once."""
        pass


class PatchBufferSurface(MapSurfaceAdapter):
    """
    Surface that records every mutation as a patch operation.

    Used by map sessions: the HTTP client holds the real map and replays the
    drained operations, while this surface keeps the authoritative scene.
    """

    def __init__(self):
        super().__init__()
        self._scene: dict[str, VisualEntity] = {}
        self._callbacks: dict[str, SelectCallback] = {}
        self._operations: list[dict] = []
        self.viewport: Optional[ViewportRequest] = None

    @property
    def scene(self) -> dict[str, VisualEntity]:
        return dict(self._scene)

    def upsert_entity(self, key, entity, on_select=None):
        self._ensure_active()
        self._scene[key] = entity
        if on_select is not None:
            self._callbacks[key] = on_select
        self._operations.append({"op": "upsert", "key": key, "entity": entity.to_dict()})

    def remove_entity(self, key):
        self._ensure_active()
        self._scene.pop(key, None)
        self._callbacks.pop(key, None)
        self._operations.append({"op": "remove", "key": key})

    def set_viewport(self, request):
        self._ensure_active()
        if isinstance(request, FitBoundsViewport):
            validate_fit_points(request)
        self.viewport = request
        self._operations.append({"op": "viewport", "viewport": request.to_dict()})

    def select(self, key: str) -> bool:
        """
        Simulate a click on the visual registered under ``key``.

        Returns:
            True if a callback was fired
        """
        self._ensure_active()
        callback = self._callbacks.get(key)
        if callback is None:
            return False
        callback()
        return True

    def drain(self) -> list[dict]:
        """Return pending operations and clear the buffer."""
        operations, self._operations = self._operations, []
        return operations

    def _release(self):
        self._scene.clear()
        self._callbacks.clear()
        self._operations.clear()
