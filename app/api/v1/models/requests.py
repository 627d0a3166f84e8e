"""
API request models using Pydantic.
"""
from pydantic import BaseModel, Field

from app.domain.models import MapView, MapViewRequest


class CreateSessionRequest(BaseModel):
    """Request model for mounting a map session."""
    view: MapView = Field(
        default=MapView.OVERVIEW,
        description="Map view to mount: overview or hotspots"
    )


class RefreshSessionRequest(MapViewRequest):
    """Request model for refreshing a map session."""

    class Config:
        json_schema_extra = {
            "example": {
                "selected_hotspot_id": 3,
                "focused_report_id": 42,
                "show_reports": True,
                "show_hotspots": True,
                "clear_selection": False,
                "filters": {
                    "status": "analyzed",
                    "severity": "high",
                    "days": 30,
                },
            }
        }


class SelectEntityRequest(BaseModel):
    """Request model for clicking a drawn visual."""
    key: str = Field(
        description="Identity key of the visual, e.g. report:42 or hotspot:3",
        examples=["hotspot:3"]
    )
