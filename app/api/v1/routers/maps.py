"""
API router for map endpoints.
"""
from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, Path, Query, Response, status
from fastapi.responses import HTMLResponse

from app.api.dependencies import MapSessionServiceDep
from app.api.v1.models.requests import (
    CreateSessionRequest,
    RefreshSessionRequest,
    SelectEntityRequest,
)
from app.api.v1.models.responses import RefreshResponse, SelectResponse, SessionResponse
from app.domain.models import Hotspot, MapFilters, MapView, MapViewRequest
from app.infrastructure.dashboard_api_client import DashboardAPIError
from app.services.application.map_session_service import (
    EntityNotFoundError,
    SessionNotFoundError,
)


router = APIRouter(
    prefix="/maps",
    tags=["maps"],
)

SessionIdPath = Annotated[str, Path(description="Map session identifier")]

RATE_LIMITED = {
    429: {"description": "Rate limit exceeded"},
}
UPSTREAM_FAILED = {
    502: {"description": "Dashboard API failure"},
}
SESSION_NOT_FOUND = {
    404: {"description": "Map session not found"},
}


def _upstream_error(e: DashboardAPIError) -> HTTPException:
    # Unknown hotspot/report ids pass through as 404
    if e.status_code == status.HTTP_404_NOT_FOUND:
        return HTTPException(status_code=404, detail=e.message)
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Failed to fetch map data: {e.message}",
    )


@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Mount a map session",
    description="""
    Mount a map view backed by a server-side surface.

    The session owns the handle table of the view until it is deleted.
    Each refresh returns the patch operations needed to bring a client-side
    map in line with the latest data.
    """,
    responses={**RATE_LIMITED},
)
async def create_session(
    body: CreateSessionRequest,
    session_service: MapSessionServiceDep,
) -> SessionResponse:
    session = session_service.create_session(body.view)
    return SessionResponse(
        session_id=session.session_id,
        view=session.view,
        created_at=session.created_at,
    )


@router.post(
    "/sessions/{session_id}/refresh",
    response_model=RefreshResponse,
    summary="Refresh a map session",
    description="""
    Fetch a complete snapshot and reconcile the session against it.

    This endpoint:
    1. Fetches reports and hotspots from the dashboard API
    2. Drops entities with invalid geometry or without an id
    3. Removes stale visuals, then updates or creates the rest by identity
    4. Resolves the camera: focused report, selected hotspot, fit to
       everything visible, or the default view

    Refreshes on one session are applied in order, one at a time.
    """,
    responses={**SESSION_NOT_FOUND, **UPSTREAM_FAILED, **RATE_LIMITED},
)
async def refresh_session(
    session_id: SessionIdPath,
    body: RefreshSessionRequest,
    session_service: MapSessionServiceDep,
) -> RefreshResponse:
    """
    Refresh a map session.

    Args:
        session_id: Session to refresh
        body: Selection, focus, layer toggles and filters
        session_service: Session registry (injected dependency)

    Returns:
        RefreshResponse with the patch operations

    Raises:
        HTTPException: If the session is unknown or the dashboard API fails
    """
    try:
        refresh = await session_service.refresh_session(session_id, body)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except DashboardAPIError as e:
        raise _upstream_error(e)

    return RefreshResponse(
        session_id=refresh.session_id,
        operations=refresh.operations,
        viewport=refresh.viewport,
        live_keys=refresh.live_keys,
        stats=refresh.stats,
        fell_back=refresh.fell_back,
    )


@router.post(
    "/sessions/{session_id}/select",
    response_model=SelectResponse,
    summary="Click a drawn visual",
    description="""
    Dispatch a click on the visual registered under a key and return the
    report or hotspot behind it. A clicked hotspot becomes the session's
    selection for the next refresh.
    """,
    responses={
        404: {"description": "Map session or entity not found"},
        **RATE_LIMITED,
    },
)
async def select_entity(
    session_id: SessionIdPath,
    body: SelectEntityRequest,
    session_service: MapSessionServiceDep,
) -> SelectResponse:
    try:
        payload = await session_service.select_entity(session_id, body.key)
        session = session_service.get_session(session_id)
    except (SessionNotFoundError, EntityNotFoundError) as e:
        raise HTTPException(status_code=404, detail=e.message)

    return SelectResponse(
        session_id=session_id,
        key=body.key,
        entity_type="hotspot" if isinstance(payload, Hotspot) else "report",
        entity=payload.model_dump(),
        selected_hotspot_id=session.selected_hotspot_id,
    )


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unmount a map session",
    responses={**SESSION_NOT_FOUND, **RATE_LIMITED},
)
async def delete_session(
    session_id: SessionIdPath,
    session_service: MapSessionServiceDep,
) -> Response:
    try:
        await session_service.close_session(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/render",
    response_class=HTMLResponse,
    summary="Render a map view as HTML",
    description="""
    Render a complete map view as a standalone Leaflet document.

    Uses the same reconciliation and viewport rules as map sessions, on a
    surface that lives only for the duration of the request.
    """,
    responses={
        200: {"content": {"text/html": {}}},
        404: {"description": "Selected hotspot not found"},
        **UPSTREAM_FAILED,
        **RATE_LIMITED,
    },
)
async def render_map(
    session_service: MapSessionServiceDep,
    view: Annotated[MapView, Query(description="Map view to render")] = MapView.OVERVIEW,
    selected_hotspot_id: Annotated[Optional[int], Query()] = None,
    focused_report_id: Annotated[Optional[int], Query()] = None,
    show_reports: bool = True,
    show_hotspots: bool = True,
    status_filter: Annotated[Optional[str], Query(alias="status")] = None,
    waste_type: Optional[str] = None,
    priority: Optional[str] = None,
    severity: Annotated[Optional[str], Query(description="high, medium or low")] = None,
    days: Annotated[int, Query(ge=1)] = 30,
) -> HTMLResponse:
    """
    Render a map view.

    Args:
        session_service: Session registry (injected dependency)
        view: Map view to render
        selected_hotspot_id: Hotspot to center on
        focused_report_id: Report to focus and highlight
        show_reports: Whether the report layer is visible
        show_hotspots: Whether the hotspot layer is visible

    Returns:
        HTMLResponse with the folium document

    Raises:
        HTTPException: If the dashboard API fails
    """
    request = MapViewRequest(
        selected_hotspot_id=selected_hotspot_id,
        focused_report_id=focused_report_id,
        show_reports=show_reports,
        show_hotspots=show_hotspots,
        filters=MapFilters(
            status=status_filter,
            waste_type=waste_type,
            priority=priority,
            severity=severity,
            days=days,
        ),
    )
    try:
        html = await session_service.render_map_html(view, request)
    except DashboardAPIError as e:
        raise _upstream_error(e)

    return HTMLResponse(content=html)
