"""
Application service: long-lived map sessions and one-shot HTML renders.

A session binds one map view to one PatchBufferSurface for as long as the
client keeps the map mounted. Refreshes on a session are serialized by a
per-session lock, so a new data set queues behind a pass still in flight.
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
import asyncio
import logging
import uuid

from app.config import settings
from app.domain.models import Hotspot, MapStats, MapView, MapViewRequest
from app.infrastructure.folium_surface import FoliumMapSurface
from app.infrastructure.map_surface import PatchBufferSurface
from app.services.application.map_data_service import MapDataService, compute_stats
from app.services.application.map_engine import MapEngine
from app.services.domain.style_policy import get_style_policy
from app.services.domain.viewport_resolver import ViewportConfig

logger = logging.getLogger(__name__)


class SessionNotFoundError(Exception):
    """Raised when a session id is unknown or already closed."""

    def __init__(self, session_id: str):
        super().__init__(f"Map session {session_id} not found")
        self.session_id = session_id
        self.message = str(self)


class EntityNotFoundError(Exception):
    """Raised when a selection targets a key with no selectable visual."""

    def __init__(self, key: str):
        super().__init__(f"No selectable entity with key {key}")
        self.key = key
        self.message = str(self)


@dataclass
class MapSession:
    """One mounted map view."""
    session_id: str
    view: MapView
    surface: PatchBufferSurface
    engine: Optional[MapEngine] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    selected_hotspot_id: Optional[int] = None
    last_selected: Any = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_refreshed: Optional[datetime] = None


@dataclass
class SessionRefresh:
    """Patch produced by one session refresh."""
    session_id: str
    operations: list[dict]
    viewport: dict
    live_keys: list[str]
    stats: MapStats
    fell_back: bool = False


def _apply_selection(session: MapSession, payload: Any) -> None:
    session.last_selected = payload
    if isinstance(payload, Hotspot):
        session.selected_hotspot_id = payload.hotspot_id


class MapSessionService:
    """
    Registry of map sessions.

    Sessions are kept in least-recently-used order; once the registry is
    full the oldest session is disposed to make room.
    """

    def __init__(self, data_service: MapDataService, max_sessions: Optional[int] = None):
        """
        Initialize the service with dependencies.

        Args:
            data_service: Snapshot loader
            max_sessions: Registry capacity (defaults to settings.max_map_sessions)
        """
        self.data_service = data_service
        self.max_sessions = max_sessions or settings.max_map_sessions
        self._sessions: "OrderedDict[str, MapSession]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def create_session(self, view: MapView = MapView.OVERVIEW) -> MapSession:
        """
        Mount a new map view.

        Args:
            view: Map view to mount

        Returns:
            The new MapSession
        """
        view = MapView(view)
        surface = PatchBufferSurface()
        session = MapSession(session_id=uuid.uuid4().hex, view=view, surface=surface)
        try:
            session.engine = MapEngine(
                surface,
                get_style_policy(view),
                viewport_config=ViewportConfig.for_view(view),
                on_select=lambda payload: _apply_selection(session, payload),
            )
        except Exception:
            surface.dispose()
            raise

        self._sessions[session.session_id] = session
        while len(self._sessions) > self.max_sessions:
            _, evicted = self._sessions.popitem(last=False)
            logger.info(f"Evicting map session {evicted.session_id}")
            evicted.engine.dispose()

        logger.info(f"Created {view.value} map session {session.session_id}")
        return session

    def get_session(self, session_id: str) -> MapSession:
        """
        Look up a session and mark it as recently used.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        self._sessions.move_to_end(session_id)
        return session

    async def refresh_session(self, session_id: str, request: MapViewRequest) -> SessionRefresh:
        """
        Load fresh data and reconcile the session's surface against it.

        The hotspot selection is remembered between refreshes: a request
        without ``selected_hotspot_id`` keeps the previous one unless
        ``clear_selection`` is set.

        Args:
            session_id: Session to refresh
            request: Selection, focus, toggles and filters

        Returns:
            SessionRefresh with the patch operations to replay client-side

        Raises:
            SessionNotFoundError: If the session does not exist
            DashboardAPIError: If the data fetch fails
        """
        session = self.get_session(session_id)

        async with session.lock:
            if request.clear_selection:
                session.selected_hotspot_id = None
            if request.selected_hotspot_id is not None:
                session.selected_hotspot_id = request.selected_hotspot_id
            effective = request.model_copy(
                update={"selected_hotspot_id": session.selected_hotspot_id}
            )

            snapshot, selection = await self.data_service.load(session.view, effective)

            # Closed while the data was loading
            if session.engine.disposed:
                raise SessionNotFoundError(session_id)

            outcome = session.engine.refresh(snapshot, selection)
            session.last_refreshed = datetime.now(timezone.utc)

            return SessionRefresh(
                session_id=session_id,
                operations=session.surface.drain(),
                viewport=outcome.viewport.to_dict(),
                live_keys=sorted(session.engine.live_keys),
                stats=compute_stats(snapshot),
                fell_back=outcome.fell_back,
            )

    async def select_entity(self, session_id: str, key: str) -> Any:
        """
        Dispatch a click on a drawn visual.

        Selecting a hotspot makes it the session's selection for the next
        refresh.

        Args:
            session_id: Session holding the visual
            key: Identity key of the clicked visual

        Returns:
            The report or hotspot behind the visual

        Raises:
            SessionNotFoundError: If the session does not exist
            EntityNotFoundError: If no visual is registered under the key
        """
        session = self.get_session(session_id)
        async with session.lock:
            session.last_selected = None
            if not session.surface.select(key):
                raise EntityNotFoundError(key)
            return session.last_selected

    async def close_session(self, session_id: str) -> None:
        """
        Unmount a session and release its surface.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        async with session.lock:
            session.engine.dispose()
        logger.info(f"Closed map session {session_id}")

    async def close_all(self) -> None:
        """Dispose every session. Used on application shutdown."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            session.engine.dispose()
        if sessions:
            logger.info(f"Closed {len(sessions)} map sessions")

    async def render_map_html(self, view: MapView, request: MapViewRequest) -> str:
        """
        Render a map view to a standalone HTML document.

        Args:
            view: Map view to render
            request: Selection, focus, toggles and filters

        Returns:
            HTML document

        Raises:
            DashboardAPIError: If the data fetch fails
        """
        view = MapView(view)
        snapshot, selection = await self.data_service.load(view, request)

        surface = FoliumMapSurface(show_legend=view == MapView.OVERVIEW)
        with MapEngine(
            surface,
            get_style_policy(view),
            viewport_config=ViewportConfig.for_view(view),
        ) as engine:
            engine.refresh(snapshot, selection)
            return surface.to_html()
