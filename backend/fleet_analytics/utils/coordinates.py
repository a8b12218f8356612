"""
Great-circle distance utilities.

Coordinates are WGS84 decimal degrees. A latitude or longitude of exactly 0
is how the telematics source reports "no fix", so any segment touching such
a point contributes no distance.
"""

from typing import Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from fleet_analytics.models.telemetry import NormalizedSample


EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Calculate great-circle distance between two points.

    Accepts scalars or numpy arrays (element-wise).

    Args:
        lat1, lon1: First point coordinates in degrees
        lat2, lon2: Second point coordinates in degrees

    Returns:
        Distance in kilometers
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlat = np.radians(np.subtract(lat2, lat1))
    dlon = np.radians(np.subtract(lon2, lon1))

    a = np.sin(dlat / 2)**2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2)**2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def is_missing_coordinate(lat: float, lon: float) -> bool:
    return lat == 0 or lon == 0


def segment_distance_km(
    prev: Optional[NormalizedSample],
    curr: NormalizedSample,
) -> float:
    """
    Distance covered between two consecutive samples.

    The first sample of a stream has no predecessor and contributes 0.
    """
    if prev is None:
        return 0.0
    if is_missing_coordinate(prev.latitude, prev.longitude):
        return 0.0
    if is_missing_coordinate(curr.latitude, curr.longitude):
        return 0.0
    return float(haversine_distance(prev.latitude, prev.longitude, curr.latitude, curr.longitude))


def segment_distances_km(samples: Sequence[NormalizedSample]) -> NDArray[np.float64]:
    """
    Vectorised segment distances for a whole stream.

    Element i is the distance from sample i-1 to sample i; element 0 is 0.
    """
    n = len(samples)
    if n == 0:
        return np.zeros(0, dtype=np.float64)

    lat = np.array([s.latitude for s in samples], dtype=np.float64)
    lon = np.array([s.longitude for s in samples], dtype=np.float64)

    distances = np.zeros(n, dtype=np.float64)
    if n == 1:
        return distances

    valid = (lat != 0) & (lon != 0)
    pair_valid = valid[:-1] & valid[1:]
    pair_dist = haversine_distance(lat[:-1], lon[:-1], lat[1:], lon[1:])
    distances[1:] = np.where(pair_valid, pair_dist, 0.0)
    return distances
