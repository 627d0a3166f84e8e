"""
Infrastructure layer: Dashboard API client with retry logic.
"""
from typing import List, Any, Optional, Type, TypeVar
import logging

import httpx
from pydantic import BaseModel, ValidationError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from app.config import settings
from app.domain.models import (
    Hotspot,
    HotspotReports,
    MapFilters,
    MapSnapshot,
    Report,
)
from app.infrastructure.api_constants import APIConstants, DashboardAPIEndpoints

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class DashboardAPIError(Exception):
    """Custom exception for dashboard API errors."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def parse_rows(model: Type[ModelT], rows: Any, label: str) -> List[ModelT]:
    """
    Parse a list of rows, skipping the ones that do not validate.

    Partial data is routine upstream, so one malformed row must not fail
    the whole snapshot.

    Args:
        model: Pydantic model to parse into
        rows: Raw JSON list
        label: Name used in log messages

    Returns:
        Parsed models
    """
    if not isinstance(rows, list):
        logger.warning(f"Expected a list of {label}, got {type(rows).__name__}")
        return []

    parsed = []
    skipped = 0
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            skipped += 1
            logger.debug(f"Skipping malformed {label} row: {e.error_count()} errors")

    if skipped:
        logger.warning(f"Skipped {skipped} malformed {label} rows")
    return parsed


class DashboardAPIClient:
    """
    Client for the dashboard's read-only JSON API.
    Implements retry logic with exponential backoff.
    """

    def __init__(self):
        """Initialize the API client with configuration."""
        self.base_url = settings.dashboard_api_base_url
        headers = {"accept": APIConstants.CONTENT_TYPE_JSON}
        if settings.dashboard_api_key:
            headers["Authorization"] = f"Bearer {settings.dashboard_api_key}"
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=settings.dashboard_api_timeout,
        )

    async def __aenter__(self) -> "DashboardAPIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.RequestError)),
        reraise=True,
    )
    async def _make_request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Any:
        """
        Make an HTTP request with retry logic.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            **kwargs: Additional arguments for the request

        Returns:
            Decoded JSON body

        Raises:
            DashboardAPIError: If the request fails with a client error
            httpx.HTTPStatusError: If the server keeps failing after retries
            httpx.RequestError: If the upstream stays unreachable after retries
        """
        try:
            response = await self.client.request(method, endpoint, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            # Retry on server errors (5xx)
            if e.response.status_code >= 500:
                raise
            # Don't retry on client errors (4xx)
            raise DashboardAPIError(
                f"API request failed: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            )
        except ValueError as e:
            raise DashboardAPIError(f"API returned invalid JSON: {str(e)}")

    async def request(self, method: str, endpoint: str, **kwargs) -> Any:
        """
        Make a request, converting exhausted retries into DashboardAPIError.

        Raises:
            DashboardAPIError: If the request fails
        """
        try:
            return await self._make_request(method, endpoint, **kwargs)
        except httpx.HTTPStatusError as e:
            raise DashboardAPIError(
                f"API request failed: {e.response.status_code} - {e.response.text}",
                status_code=502,
            )
        except httpx.RequestError as e:
            raise DashboardAPIError(f"API request error: {str(e)}", status_code=502)

    async def get_map_data(self, filters: Optional[MapFilters] = None) -> MapSnapshot:
        """
        Fetch the reports and active hotspots shown on the map.

        Args:
            filters: Optional report filters

        Returns:
            MapSnapshot instance

        Raises:
            DashboardAPIError: If the request fails
        """
        params = (filters or MapFilters()).to_query_params()
        data = await self.request("GET", DashboardAPIEndpoints.MAP_REPORTS, params=params)
        if not isinstance(data, dict):
            raise DashboardAPIError("Map endpoint returned an unexpected payload")

        return MapSnapshot(
            reports=parse_rows(Report, data.get("reports", []), "report"),
            hotspots=parse_rows(Hotspot, data.get("hotspots", []), "hotspot"),
        )

    async def get_hotspots(self) -> List[Hotspot]:
        """
        Fetch all active hotspots.

        Returns:
            List of Hotspot instances

        Raises:
            DashboardAPIError: If the request fails
        """
        data = await self.request("GET", DashboardAPIEndpoints.HOTSPOTS)
        return parse_rows(Hotspot, data, "hotspot")

    async def get_hotspot_reports(self, hotspot_id: int) -> HotspotReports:
        """
        Fetch a hotspot and the reports clustered into it.

        Args:
            hotspot_id: Unique identifier for the hotspot

        Returns:
            HotspotReports instance

        Raises:
            DashboardAPIError: If the request fails or the hotspot is unknown
        """
        data = await self.request("GET", DashboardAPIEndpoints.get_hotspot_reports(hotspot_id))
        if not isinstance(data, dict) or "hotspot" not in data:
            raise DashboardAPIError(f"Hotspot {hotspot_id} not found", status_code=404)

        try:
            hotspot = Hotspot.model_validate(data["hotspot"])
        except ValidationError:
            raise DashboardAPIError(f"Hotspot {hotspot_id} payload is malformed")

        return HotspotReports(
            hotspot=hotspot,
            reports=parse_rows(Report, data.get("reports", []), "report"),
        )

    async def get_report(self, report_id: int) -> Report:
        """
        Fetch a single report.

        Args:
            report_id: Unique identifier for the report

        Returns:
            Report instance

        Raises:
            DashboardAPIError: If the request fails or the report is malformed
        """
        data = await self.request("GET", DashboardAPIEndpoints.get_report(report_id))
        try:
            return Report.model_validate(data)
        except ValidationError:
            raise DashboardAPIError(f"Report {report_id} payload is malformed")


# Singleton instance
_api_client: Optional[DashboardAPIClient] = None


def get_api_client() -> DashboardAPIClient:
    """
    Get or create the singleton API client instance.

    Returns:
        DashboardAPIClient instance
    """
    global _api_client
    if _api_client is None:
        _api_client = DashboardAPIClient()
    return _api_client
