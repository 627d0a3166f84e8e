"""
Application service: assembles complete map snapshots from the dashboard API.
"""
from typing import Optional
import logging

from app.domain.models import (
    Hotspot,
    MapSelection,
    MapSnapshot,
    MapStats,
    MapView,
    MapViewRequest,
)
from app.infrastructure.dashboard_api_client import (
    DashboardAPIClient,
    DashboardAPIError,
)
from app.services.domain.style_policy import HIGH_SEVERITY_THRESHOLD
from app.utils.geometry import parse_numeric

logger = logging.getLogger(__name__)


def compute_stats(snapshot: MapSnapshot) -> MapStats:
    """
    Headline numbers for a snapshot.

    Args:
        snapshot: Current snapshot

    Returns:
        MapStats instance
    """
    high_severity = 0
    for report in snapshot.reports:
        severity = parse_numeric(report.severity_score)
        if severity is not None and severity > HIGH_SEVERITY_THRESHOLD:
            high_severity += 1

    return MapStats(
        total_reports=len(snapshot.reports),
        total_hotspots=len(snapshot.hotspots),
        high_severity=high_severity,
    )


def find_hotspot(snapshot: MapSnapshot, hotspot_id: Optional[int]) -> Optional[Hotspot]:
    if hotspot_id is None:
        return None
    for hotspot in snapshot.hotspots:
        if hotspot.hotspot_id == hotspot_id:
            return hotspot
    return None


class MapDataService:
    """
    Application service for map data.

    Orchestrates data fetching per map view. Follows the application layer
    pattern - no business logic here, only coordination between the API
    client and the domain models.
    """

    def __init__(self, api_client: DashboardAPIClient):
        """
        Initialize the service with dependencies.

        Args:
            api_client: Dashboard API client for data fetching
        """
        self.api_client = api_client

    async def load(
        self,
        view: MapView,
        request: MapViewRequest,
    ) -> tuple[MapSnapshot, MapSelection]:
        """
        Load a complete snapshot and resolve the selection by identity.

        Args:
            view: Map view being refreshed
            request: Requested selection, focus, toggles and filters

        Returns:
            Tuple of (snapshot, selection)

        Raises:
            DashboardAPIError: If the primary data fetch fails
        """
        if MapView(view) == MapView.HOTSPOTS:
            snapshot = await self._load_hotspot_page(request.selected_hotspot_id)
        else:
            snapshot = await self._load_overview(request)

        selected = find_hotspot(snapshot, request.selected_hotspot_id)
        if request.selected_hotspot_id is not None and selected is None:
            logger.info(f"Selected hotspot {request.selected_hotspot_id} is not in the snapshot")

        selection = MapSelection(
            selected_hotspot=selected,
            focused_report_id=request.focused_report_id,
            show_reports=request.show_reports,
            show_hotspots=request.show_hotspots,
        )
        return snapshot, selection

    async def _load_overview(self, request: MapViewRequest) -> MapSnapshot:
        snapshot = await self.api_client.get_map_data(request.filters)

        focused_id = request.focused_report_id
        if focused_id is None:
            return snapshot
        if any(report.report_id == focused_id for report in snapshot.reports):
            return snapshot

        # Filters may have excluded the focused report; fetch it on its own
        try:
            report = await self.api_client.get_report(focused_id)
        except DashboardAPIError as e:
            logger.warning(f"Could not fetch focused report {focused_id}: {e.message}")
            return snapshot

        return MapSnapshot(reports=[*snapshot.reports, report], hotspots=snapshot.hotspots)

    async def _load_hotspot_page(self, selected_hotspot_id: Optional[int]) -> MapSnapshot:
        hotspots = await self.api_client.get_hotspots()
        if selected_hotspot_id is None:
            return MapSnapshot(reports=[], hotspots=hotspots)

        try:
            detail = await self.api_client.get_hotspot_reports(selected_hotspot_id)
        except DashboardAPIError as e:
            logger.warning(f"Could not fetch reports for hotspot {selected_hotspot_id}: {e.message}")
            return MapSnapshot(reports=[], hotspots=hotspots)

        return MapSnapshot(reports=detail.reports, hotspots=hotspots)
