"""
API response models using Pydantic.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

from app.domain.models import MapStats, MapView


class SessionResponse(BaseModel):
    """Response model for a mounted map session."""
    session_id: str = Field(
        description="Opaque identifier of the map session"
    )
    view: MapView = Field(
        description="Map view mounted by the session"
    )
    created_at: datetime


class RefreshResponse(BaseModel):
    """Response model for a session refresh."""
    session_id: str
    operations: List[Dict[str, Any]] = Field(
        description="Surface mutations to replay in order: upsert, remove or viewport"
    )
    viewport: Dict[str, Any] = Field(
        description="Camera request applied by this refresh"
    )
    live_keys: List[str] = Field(
        description="Identity keys drawn after this refresh"
    )
    stats: MapStats
    fell_back: bool = Field(
        default=False,
        description="True if a fit-to-bounds request was replaced by the default view"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "session_id": "5f0c6b1e9d2a4c7f8e3b2a1d0c9e8f7a",
                "operations": [
                    {"op": "remove", "key": "report:7"},
                    {
                        "op": "upsert",
                        "key": "report:1",
                        "entity": {
                            "key": "report:1",
                            "kind": "marker",
                            "position": [-8.55, 125.57],
                        },
                    },
                    {
                        "op": "viewport",
                        "viewport": {"type": "center", "lat": -8.55, "lng": 125.57, "zoom": 15},
                    },
                ],
                "viewport": {"type": "center", "lat": -8.55, "lng": 125.57, "zoom": 15},
                "live_keys": ["report:1"],
                "stats": {"total_reports": 1, "total_hotspots": 0, "high_severity": 0},
                "fell_back": False,
            }
        }


class SelectResponse(BaseModel):
    """Response model for a click on a drawn visual."""
    session_id: str
    key: str
    entity_type: Literal["report", "hotspot"]
    entity: Dict[str, Any] = Field(
        description="Report or hotspot behind the clicked visual"
    )
    selected_hotspot_id: Optional[int] = Field(
        default=None,
        description="Hotspot the session will keep selected on the next refresh"
    )
