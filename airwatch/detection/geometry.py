"""
Geometry helpers for movement detectors.

Functions:
    angle_diff: Smallest angle between two headings
    haversine_meters: Great-circle distance between two points
    centroid: Arithmetic mean of a set of positions
"""

import math
from typing import Iterable, Tuple

EARTH_RADIUS_METERS = 6371000.0


def angle_diff(a: float, b: float) -> float:
    """
    Smallest unsigned angle between two headings.

    Returns ``min(|a - b|, 360 - |a - b|)``, always in [0, 180] and
    symmetric in its arguments.

    Example:
        >>> angle_diff(10, 200)
        170.0
        >>> angle_diff(350, 10)
        20.0
    """
    diff = abs(a - b) % 360
    return float(min(diff, 360 - diff))


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters using the haversine formula."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(h)))


def centroid(points: Iterable[Tuple[float, float]]) -> Tuple[float, float]:
    """
    Mean latitude and longitude of the given points.

    Adequate for the few-kilometre clusters examined by the holding pattern
    detector; not meaningful across the antimeridian.

    Raises:
        ValueError: If no points are given.
    """
    lats = []
    lons = []
    for lat, lon in points:
        lats.append(lat)
        lons.append(lon)
    if not lats:
        raise ValueError("centroid of an empty point set")
    return sum(lats) / len(lats), sum(lons) / len(lons)
