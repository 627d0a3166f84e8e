"""
Popup HTML for report markers and hotspot circles.
"""
from datetime import datetime
from html import escape
from typing import Optional

from app.domain.models import Hotspot, Report, ReportStatus
from app.utils.geometry import NOT_AVAILABLE, format_number, format_radius_km, parse_numeric

_STATUS_BADGES = {
    ReportStatus.RESOLVED.value: "bg-green-100 text-green-800",
    ReportStatus.ANALYZED.value: "bg-blue-100 text-blue-800",
    ReportStatus.ANALYZING.value: "bg-purple-100 text-purple-800",
}
_DEFAULT_BADGE = "bg-gray-100 text-gray-800"


def _severity_class(severity: float) -> str:
    if severity > 7:
        return "text-red-600"
    if severity > 4:
        return "text-amber-600"
    return "text-green-600"


def _display_date(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace(" ", "T")).date().isoformat()
    except ValueError:
        return escape(value)


def report_popup_html(report: Report) -> str:
    """
    Build the popup shown when a report marker is clicked.

    Args:
        report: Report to describe

    Returns:
        HTML fragment
    """
    parts = [
        '<div class="max-w-xs">',
        f'<div class="font-semibold text-emerald-700 mb-1">Report #{report.report_id}</div>',
        f'<div class="text-xs text-gray-500 mb-2">{_display_date(report.report_date)}</div>',
    ]

    if report.image_url:
        parts.append(
            f'<div class="mb-3"><img src="{escape(report.image_url, quote=True)}" '
            f'alt="Report image" class="w-full h-32 object-cover rounded-md shadow-sm" /></div>'
        )

    parts.append('<div class="text-sm">')
    if report.waste_type:
        parts.append(
            f'<div class="mb-1"><span class="font-medium">Type:</span> {escape(report.waste_type)}</div>'
        )
    else:
        parts.append('<div class="mb-1 text-gray-500 italic">Not yet analyzed</div>')

    severity = parse_numeric(report.severity_score)
    if severity:
        parts.append(
            '<div class="mb-1"><span class="font-medium">Severity:</span> '
            f'<span class="{_severity_class(severity)} font-medium">{format_number(severity)}/10</span></div>'
        )

    if report.description:
        parts.append(
            '<div class="mb-1 mt-2"><span class="font-medium">Description:</span>'
            f'<p class="text-gray-600 text-xs mt-1">{escape(report.description)}</p></div>'
        )
    parts.append("</div>")

    badge = _STATUS_BADGES.get(report.status, _DEFAULT_BADGE)
    parts.append(
        f'<div class="mt-2"><span class="inline-block px-2 py-1 text-xs rounded-full {badge}">'
        f"{escape(report.status)}</span></div>"
    )
    parts.append("</div>")
    return "".join(parts)


def hotspot_popup_html(hotspot: Hotspot) -> str:
    """
    Build the popup shown when a hotspot circle is clicked.

    Args:
        hotspot: Hotspot to describe

    Returns:
        HTML fragment
    """
    parts = [
        '<div class="max-w-xs">',
        f'<div class="font-semibold text-red-700 mb-1">{escape(hotspot.name)}</div>',
        '<div class="text-xs text-gray-500 mb-2">First reported: '
        f"{escape(hotspot.first_reported or 'N/A')}</div>",
        '<div class="grid grid-cols-2 gap-2 text-sm">',
        f'<div><span class="font-medium">Reports:</span> {hotspot.total_reports}</div>',
    ]

    severity = parse_numeric(hotspot.average_severity)
    if severity:
        parts.append(
            '<div><span class="font-medium">Severity:</span> '
            f'<span class="{_severity_class(severity)} font-medium">{format_number(severity)}/10</span></div>'
        )

    radius_km = format_radius_km(hotspot.radius_meters)
    if radius_km != NOT_AVAILABLE:
        radius_km += "km"
    parts.append(f'<div><span class="font-medium">Radius:</span> {radius_km}</div>')
    parts.append("</div>")
    parts.append(
        f'<div class="mt-3 text-center"><a href="/hotspots?id={hotspot.hotspot_id}" '
        'class="inline-block px-3 py-1.5 text-xs bg-red-600 text-white rounded hover:bg-red-700">'
        "View Details</a></div>"
    )
    parts.append("</div>")
    return "".join(parts)
