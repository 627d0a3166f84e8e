"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample reports and hotspots
- Map surfaces and style policies
- Mock API client
- FastAPI test client
"""
import pytest
from typing import AsyncGenerator
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from tenacity import wait_none

import app.api.dependencies as dependencies
from app.main import app
from app.domain.models import Hotspot, MapSnapshot, Report
from app.infrastructure.dashboard_api_client import DashboardAPIClient
from app.infrastructure.map_surface import PatchBufferSurface
from app.services.domain.style_policy import HotspotPageStylePolicy, OverviewStylePolicy


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def sample_reports() -> list[Report]:
    """Three placeable reports around Dili in different states."""
    return [
        Report(
            report_id=1,
            latitude=-8.55,
            longitude=125.57,
            status="analyzed",
            severity_score=8.5,
            waste_type="Plastic",
            description="Bags piled along the canal",
            report_date="2024-03-01T09:30:00",
        ),
        Report(
            report_id=2,
            latitude=-8.56,
            longitude=125.58,
            status="pending",
        ),
        Report(
            report_id=3,
            latitude="-8.57",
            longitude="125.59",
            status="resolved",
            severity_score="3",
        ),
    ]


@pytest.fixture
def sample_hotspots() -> list[Hotspot]:
    """Two hotspots, one without a usable radius."""
    return [
        Hotspot(
            hotspot_id=10,
            name="Comoro Market",
            center_latitude=-8.55,
            center_longitude=125.57,
            radius_meters=300,
            total_reports=5,
            average_severity=7.5,
            first_reported="2024-02-10",
        ),
        Hotspot(
            hotspot_id=11,
            name="Becora",
            center_latitude=-8.56,
            center_longitude=125.60,
            radius_meters=None,
            total_reports=2,
        ),
    ]


@pytest.fixture
def sample_snapshot(sample_reports, sample_hotspots) -> MapSnapshot:
    """Snapshot holding all sample reports and hotspots."""
    return MapSnapshot(reports=sample_reports, hotspots=sample_hotspots)


@pytest.fixture
def sample_map_payload() -> dict:
    """Raw /map/reports body as served by the dashboard."""
    return {
        "reports": [
            {"report_id": 1, "latitude": "-8.55", "longitude": "125.57",
             "status": "analyzed", "severity_score": "8.5"},
            {"report_id": 2, "latitude": None, "longitude": 125.58, "status": "pending"},
        ],
        "hotspots": [
            {"hotspot_id": 10, "name": "Comoro Market", "center_latitude": -8.55,
             "center_longitude": 125.57, "radius_meters": "300", "total_reports": 5},
        ],
    }


# ============================================================
# Map Surface Fixtures
# ============================================================

@pytest.fixture
def surface() -> PatchBufferSurface:
    """Fresh recording surface."""
    return PatchBufferSurface()


@pytest.fixture
def overview_policy() -> OverviewStylePolicy:
    return OverviewStylePolicy()


@pytest.fixture
def hotspot_policy() -> HotspotPageStylePolicy:
    return HotspotPageStylePolicy()


# ============================================================
# Mock API Client Fixtures
# ============================================================

@pytest.fixture
def mock_api_client(sample_reports, sample_hotspots):
    """Create a mock dashboard API client."""
    mock_client = AsyncMock(spec=DashboardAPIClient)
    mock_client.get_map_data.return_value = MapSnapshot(
        reports=sample_reports,
        hotspots=sample_hotspots,
    )
    mock_client.get_hotspots.return_value = sample_hotspots
    return mock_client


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    """Retry immediately so retry tests do not sleep."""
    monkeypatch.setattr(DashboardAPIClient._make_request.retry, "wait", wait_none())


@pytest.fixture(autouse=True)
def reset_session_service():
    """Each test starts with an empty session registry."""
    dependencies._session_service = None
    yield
    dependencies._session_service = None
    app.dependency_overrides.clear()


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client() -> TestClient:
    """Create a synchronous test client for FastAPI."""
    return TestClient(app)


@pytest.fixture
async def async_test_client() -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client for FastAPI."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
