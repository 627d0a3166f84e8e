"""
Geometry validation and numeric formatting helpers.

Every function here is pure and total: malformed input yields a rejected
value or a placeholder, never an exception.
"""
import math
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional, Union

DEFAULT_RADIUS_METERS = 500.0
NOT_AVAILABLE = "N/A"

LAT_RANGE = (-90.0, 90.0)
LNG_RANGE = (-180.0, 180.0)

# Plain decimal or exponent notation, ASCII digits only
NUMERIC_PATTERN = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


@dataclass(frozen=True)
class LatLng:
    """A validated WGS84 coordinate."""
    lat: float
    lng: float

    is_valid = True

    def as_list(self) -> list[float]:
        return [self.lat, self.lng]


@dataclass(frozen=True)
class Rejected:
    """A coordinate pair that cannot be placed on the map."""
    reason: str

    is_valid = False


CoordinateResult = Union[LatLng, Rejected]


def parse_numeric(value: Any) -> Optional[float]:
    """
    Coerce a value to a finite float.

    Args:
        value: Number, numeric string, None or anything else

    Returns:
        The float value, or None if the value is absent, non-numeric or not finite
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        value = value.strip()
        if not NUMERIC_PATTERN.fullmatch(value):
            return None

    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None

    if not math.isfinite(number):
        return None
    return number


def validate_coordinate(lat: Any, lng: Any) -> CoordinateResult:
    """
    Validate and normalize a latitude/longitude pair.

    Args:
        lat: Candidate latitude
        lng: Candidate longitude

    Returns:
        LatLng when both values are numeric and in range, otherwise Rejected
    """
    if lat is None or lng is None:
        return Rejected("missing")

    lat_value = parse_numeric(lat)
    lng_value = parse_numeric(lng)
    if lat_value is None or lng_value is None:
        return Rejected("non_numeric")

    if not (LAT_RANGE[0] <= lat_value <= LAT_RANGE[1]):
        return Rejected("out_of_range")
    if not (LNG_RANGE[0] <= lng_value <= LNG_RANGE[1]):
        return Rejected("out_of_range")

    return LatLng(lat=lat_value, lng=lng_value)


def format_number(value: Any, decimals: int = 1) -> str:
    """
    Render a value with fixed precision for display.

    Rounding is half-away-from-zero on the shortest decimal representation
    of the value, so 7.25 renders as "7.3" and -7.25 as "-7.3".

    Args:
        value: Value to format
        decimals: Number of digits after the decimal point

    Returns:
        Formatted string, or "N/A" if the value is not a finite number
    """
    number = parse_numeric(value)
    if number is None:
        return NOT_AVAILABLE

    try:
        quantum = Decimal(1).scaleb(-decimals)
        rounded = Decimal(repr(number)).quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Beyond decimal context precision
        return f"{number:.{decimals}f}"

    if rounded == 0:
        # Avoid "-0.0"
        rounded = abs(rounded)
    return f"{rounded:.{decimals}f}"


def normalize_radius(value: Any, default: float = DEFAULT_RADIUS_METERS) -> float:
    """
    Normalize a hotspot radius.

    Args:
        value: Candidate radius in meters
        default: Radius used when the candidate is unusable

    Returns:
        The coerced radius if positive, otherwise the default
    """
    radius = parse_numeric(value)
    if radius is None or radius <= 0:
        return default
    return radius


def format_radius_km(radius_meters: Any) -> str:
    """Format a radius given in meters as kilometers with one decimal."""
    radius = parse_numeric(radius_meters)
    if radius is None:
        return NOT_AVAILABLE
    return format_number(radius / 1000)
