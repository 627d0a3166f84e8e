"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Upstream dashboard API Configuration
    dashboard_api_base_url: str = Field(
        default="http://localhost:3000/api",
        description="Base URL of the dashboard JSON API serving reports and hotspots"
    )
    dashboard_api_key: str = Field(
        default="",
        description="Optional bearer token for the dashboard API"
    )
    dashboard_api_timeout: float = Field(
        default=15.0,
        description="Timeout in seconds for dashboard API requests"
    )

    # Retry Configuration
    max_retry_attempts: int = Field(
        default=3,
        description="Maximum number of retry attempts for API calls"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=4,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=10,
        description="Maximum wait time in seconds between retries"
    )

    # Map Viewport Parameters
    map_default_latitude: float = Field(
        default=-8.55,
        description="Latitude of the default map anchor (Dili, Timor-Leste)"
    )
    map_default_longitude: float = Field(
        default=125.56,
        description="Longitude of the default map anchor (Dili, Timor-Leste)"
    )
    map_default_zoom: int = Field(
        default=11,
        description="Zoom level used when there is nothing to show"
    )
    map_focus_zoom: int = Field(
        default=15,
        description="Zoom level when centering on a focused report"
    )
    map_selection_zoom: int = Field(
        default=13,
        description="Zoom level when centering on a selected hotspot"
    )
    map_fit_padding: tuple[int, int] = Field(
        default=(30, 30),
        description="Pixel padding applied to fit-to-bounds requests"
    )

    # Map Entity Parameters
    map_default_radius_meters: float = Field(
        default=500.0,
        description="Hotspot radius used when the upstream value is missing or invalid"
    )
    map_highlight_radius_meters: float = Field(
        default=50.0,
        description="Radius of the ring drawn around a focused report"
    )
    map_tiles: str = Field(
        default="OpenStreetMap",
        description="folium basemap tiles used for rendered HTML maps (key-free by default)"
    )
    max_map_sessions: int = Field(
        default=256,
        description="Maximum number of live map sessions kept in memory"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="Waste Monitor Map Engine",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
