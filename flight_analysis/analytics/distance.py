"""
Great-circle distance helpers for distance markers.

Finds when an aircraft first crosses a given range from a reference
point (e.g. the 9 NM ring around a gliding site), interpolating between
the two samples that straddle the ring.
"""

import math
from typing import Iterable, Optional, Tuple

EARTH_RADIUS_NM = 3440.065


def haversine_distance_nm(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate great-circle distance between two points in nautical miles.

    Uses the Haversine formula for accuracy over short to medium distances.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) *
        math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_NM * c


def find_distance_crossing(
    samples: Iterable[Tuple[float, float, float]],
    reference: Tuple[float, float],
    target_nm: float,
    tolerance_nm: float = 0.05,
) -> Optional[float]:
    """
    Elapsed time of the first crossing of `target_nm` from `reference`.

    Args:
        samples: (elapsed_seconds, latitude, longitude), time-ordered
        reference: (lat, lon) of the reference point
        target_nm: Ring radius in nautical miles
        tolerance_nm: A sample this close to the ring counts as a crossing

    Returns the crossing time, or None if the track never reaches the ring.
    Samples at exactly (0, 0) are treated as missing fixes.
    """
    previous: Optional[Tuple[float, float]] = None

    for seconds, lat, lon in samples:
        if lat == 0 and lon == 0:
            continue

        distance = haversine_distance_nm(reference[0], reference[1], lat, lon)

        if abs(distance - target_nm) <= tolerance_nm:
            return seconds

        if previous is not None:
            prev_seconds, prev_distance = previous
            crossed = (
                (prev_distance < target_nm < distance) or
                (prev_distance > target_nm > distance)
            )
            if crossed:
                ratio = (target_nm - prev_distance) / (distance - prev_distance)
                return prev_seconds + ratio * (seconds - prev_seconds)

        previous = (seconds, distance)

    return None
