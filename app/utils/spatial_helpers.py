"""
Spatial helper functions.

Provides utilities for:
- Bounding regions of point sets
- Unweighted centroids
"""
import numpy as np
from shapely.geometry import MultiPoint
import logging

logger = logging.getLogger(__name__)


def bounding_region(
    points: list[tuple[float, float]]
) -> tuple[float, float, float, float]:
    """
    Compute the bounding region of a set of (lat, lng) points.

    Args:
        points: List of (latitude, longitude) tuples

    Returns:
        Tuple of (south, west, north, east)

    Raises:
        ValueError: If the point list is empty
    """
    if not points:
        raise ValueError("Points list cannot be empty")

    # shapely works in (x, y) = (lng, lat)
    min_lng, min_lat, max_lng, max_lat = MultiPoint(
        [(lng, lat) for lat, lng in points]
    ).bounds
    return (min_lat, min_lng, max_lat, max_lng)


def is_degenerate(bounds: tuple[float, float, float, float]) -> bool:
    """
    Check whether a bounding region has zero extent on both axes.

    Args:
        bounds: Tuple of (south, west, north, east)

    Returns:
        True if the region collapses to a single point
    """
    south, west, north, east = bounds
    return south == north and west == east


def mean_center(points: list[tuple[float, float]]) -> tuple[float, float]:
    """
    Arithmetic mean of (lat, lng) points, unweighted.

    Args:
        points: List of (latitude, longitude) tuples

    Returns:
        (latitude, longitude) of the mean

    Raises:
        ValueError: If the point list is empty
    """
    if not points:
        raise ValueError("Points list cannot be empty")

    lat, lng = np.asarray(points, dtype=float).mean(axis=0)
    return (float(lat), float(lng))
