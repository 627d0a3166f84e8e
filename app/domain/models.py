"""
Domain models for waste reports and hotspot clusters.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, databases, etc.).

Coordinates and numeric scores are kept lenient on purpose: the upstream
serves numbers, numeric strings or nulls depending on how far analysis has
progressed. Coercion and range checks happen in app.utils.geometry so that a
single bad row never fails the parsing of a whole snapshot. Nulls in display
fields fall back to their defaults for the same reason.
"""
from enum import Enum
from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.utils.geometry import parse_numeric


LenientNumber = Optional[Union[float, str]]


class ReportStatus(str, Enum):
    """Lifecycle states of a citizen report."""
    PENDING = "pending"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class HotspotStatus(str, Enum):
    """Lifecycle states of a hotspot cluster."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class MapView(str, Enum):
    """Map views served by the engine, each with its own style policy."""
    OVERVIEW = "overview"
    HOTSPOTS = "hotspots"


class Report(BaseModel):
    """Single waste-incident report."""
    model_config = ConfigDict(extra="ignore")

    report_id: Optional[int] = None
    latitude: LenientNumber = None
    longitude: LenientNumber = None
    status: str = Field(default=ReportStatus.PENDING.value)
    severity_score: LenientNumber = Field(
        default=None,
        description="AI-assigned severity on a 0-10 scale"
    )
    priority_level: Optional[str] = None
    waste_type: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    report_date: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, value):
        return ReportStatus.PENDING.value if value is None else value


class Hotspot(BaseModel):
    """Server-computed cluster of reports."""
    model_config = ConfigDict(extra="ignore")

    hotspot_id: Optional[int] = None
    name: str = ""
    center_latitude: LenientNumber = None
    center_longitude: LenientNumber = None
    radius_meters: LenientNumber = None
    total_reports: int = 0
    average_severity: LenientNumber = None
    first_reported: Optional[str] = None
    last_reported: Optional[str] = None
    status: str = Field(default=HotspotStatus.ACTIVE.value)
    report_count: Optional[int] = None

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, value):
        return "" if value is None else value

    @field_validator("total_reports", mode="before")
    @classmethod
    def default_total_reports(cls, value):
        number = parse_numeric(value)
        return 0 if number is None else int(number)

    @field_validator("report_count", mode="before")
    @classmethod
    def lenient_report_count(cls, value):
        number = parse_numeric(value)
        return None if number is None else int(number)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, value):
        return HotspotStatus.ACTIVE.value if value is None else value


class MapSnapshot(BaseModel):
    """Complete set of reports and hotspots for one refresh cycle."""
    reports: List[Report] = Field(default_factory=list)
    hotspots: List[Hotspot] = Field(default_factory=list)


class HotspotReports(BaseModel):
    """A hotspot together with the reports clustered into it."""
    hotspot: Hotspot
    reports: List[Report] = Field(default_factory=list)


class MapSelection(BaseModel):
    """Caller-owned selection, focus and layer toggles."""
    selected_hotspot: Optional[Hotspot] = None
    focused_report_id: Optional[int] = None
    show_reports: bool = True
    show_hotspots: bool = True


class MapStats(BaseModel):
    """Headline numbers shown next to the map."""
    total_reports: int = 0
    total_hotspots: int = 0
    high_severity: int = Field(
        default=0,
        description="Reports with a severity score above 7"
    )


class MapFilters(BaseModel):
    """Filters forwarded to the upstream map endpoint."""
    status: Optional[str] = None
    waste_type: Optional[str] = None
    priority: Optional[str] = None
    severity: Optional[str] = Field(
        default=None,
        description="Severity band: high, medium or low"
    )
    days: int = 30

    def to_query_params(self) -> dict:
        """Drop empty values, mirroring how the dashboard builds query strings."""
        return {
            key: value
            for key, value in self.model_dump().items()
            if value is not None and value != ""
        }


class MapViewRequest(BaseModel):
    """What a caller wants to see on one refresh, by identity."""
    selected_hotspot_id: Optional[int] = None
    focused_report_id: Optional[int] = None
    show_reports: bool = True
    show_hotspots: bool = True
    clear_selection: bool = Field(
        default=False,
        description="Drop the hotspot selection remembered by a map session"
    )
    filters: MapFilters = Field(default_factory=MapFilters)
