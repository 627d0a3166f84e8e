"""
Global error handling middleware.
"""
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

from app.infrastructure.dashboard_api_client import DashboardAPIError
from app.infrastructure.map_surface import SurfaceDisposedError
from app.services.application.map_engine import RefreshInProgressError
from app.services.application.map_session_service import SessionNotFoundError


logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches unhandled exceptions and returns consistent error responses.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        """
        Process the request and handle any exceptions.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            Response object
        """
        try:
            response = await call_next(request)
            return response

        except DashboardAPIError as e:
            logger.error(
                f"Dashboard API error: {str(e)}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": e.status_code,
                }
            )
            # Upstream 404s pass through, everything else is a bad gateway
            status_code = e.status_code if e.status_code == status.HTTP_404_NOT_FOUND else status.HTTP_502_BAD_GATEWAY
            return JSONResponse(
                status_code=status_code,
                content={
                    "error": "Dashboard API error",
                    "detail": e.message,
                }
            )

        except SessionNotFoundError as e:
            logger.info(f"Unknown map session: {e.session_id}")
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={
                    "error": "Map session not found",
                    "detail": e.message,
                }
            )

        except (SurfaceDisposedError, RefreshInProgressError) as e:
            logger.warning(
                f"Map surface conflict: {str(e)}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            return JSONResponse(
                status_code=status.HTTP_409_CONFLICT,
                content={
                    "error": "Map surface unavailable",
                    "detail": str(e),
                }
            )

        except ValueError as e:
            logger.warning(
                f"Validation error: {str(e)}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={
                    "error": "Invalid request",
                    "detail": str(e),
                }
            )

        except Exception as e:
            logger.exception(
                f"Unhandled exception: {str(e)}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "Internal server error",
                    "detail": "An unexpected error occurred",
                }
            )
