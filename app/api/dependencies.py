"""
Dependency injection for FastAPI.
"""
from typing import Annotated, Optional
from fastapi import Depends

from app.config import settings
from app.infrastructure.dashboard_api_client import get_api_client
from app.services.application.map_data_service import MapDataService
from app.services.application.map_session_service import MapSessionService


def get_map_data_service() -> MapDataService:
    """
    Dependency factory for MapDataService.

    Returns:
        MapDataService bound to the shared dashboard API client
    """
    return MapDataService(api_client=get_api_client())


# Sessions outlive requests, so the registry is a process-wide singleton
_session_service: Optional[MapSessionService] = None


def get_session_service() -> MapSessionService:
    """
    Get or create the singleton MapSessionService.

    Returns:
        MapSessionService instance
    """
    global _session_service
    if _session_service is None:
        _session_service = MapSessionService(
            data_service=get_map_data_service(),
            max_sessions=settings.max_map_sessions,
        )
    return _session_service


# Type aliases for cleaner route signatures
MapSessionServiceDep = Annotated[MapSessionService, Depends(get_session_service)]
