"""
API endpoint constants and configuration.

This module contains all upstream dashboard API endpoint paths and related constants.
Centralizing these values makes it easy to swap out endpoints or update API versions.
"""


# Dashboard API Endpoints
class DashboardAPIEndpoints:
    """Dashboard API endpoint paths."""

    MAP_REPORTS = "/map/reports"
    HOTSPOTS = "/hotspots"
    HOTSPOT_REPORTS = "/hotspots/{hotspot_id}/reports"
    REPORT_BY_ID = "/reports/{report_id}"

    @classmethod
    def get_hotspot_reports(cls, hotspot_id: int) -> str:
        """
        Get the reports endpoint for a specific hotspot.

        Args:
            hotspot_id: Hotspot ID

        Returns:
            Formatted endpoint path
        """
        return cls.HOTSPOT_REPORTS.format(hotspot_id=hotspot_id)

    @classmethod
    def get_report(cls, report_id: int) -> str:
        """
        Get the endpoint for a single report.

        Args:
            report_id: Report ID

        Returns:
            Formatted endpoint path
        """
        return cls.REPORT_BY_ID.format(report_id=report_id)


# API Configuration Constants
class APIConstants:
    """General API configuration constants."""

    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"
