"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.middleware.error_handler import ErrorHandlerMiddleware
from app.api.dependencies import get_session_service
from app.api.v1.routers import maps

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Rate limiter
limiter = Limiter(key_func=get_remote_address)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Dashboard API: {settings.dashboard_api_base_url}")
    logger.info(f"Map defaults: center=({settings.map_default_latitude}, "
                f"{settings.map_default_longitude}), zoom={settings.map_default_zoom}, "
                f"max_sessions={settings.max_map_sessions}")
    logger.info(f"Rate limit: {settings.rate_limit_requests} requests/minute")

    yield

    # Shutdown
    from app.infrastructure.dashboard_api_client import get_api_client
    logger.info("Shutting down application...")
    await get_session_service().close_all()
    client = get_api_client()
    await client.close()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Map engine for the waste monitoring dashboard

    This API keeps interactive maps of citizen waste reports and hotspot
    clusters in sync with the dashboard's data.

    ## Features

    - **Geometry Validation**: Reports and hotspots with missing, non-numeric or
      out-of-range coordinates are skipped instead of failing the map
    - **Entity Reconciliation**: Each refresh patches the map by identity;
      stale markers are removed before anything new is drawn
    - **Viewport Resolution**: Focused report, then selected hotspot, then fit
      to everything visible, then the default view
    - **Map Sessions**: Server-held handle tables that return patch operations
    - **HTML Rendering**: Standalone Leaflet documents rendered with folium
    - **Robust Error Handling**: Automatic retries with exponential backoff for
      dashboard API calls
    - **Rate Limiting**: Protects the API from abuse
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
app.include_router(maps.router, prefix="/api/v1")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "active_sessions": len(get_session_service()),
    }
