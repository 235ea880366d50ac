"""
Utilities for calculating travel time between venues.
"""

from typing import Literal

from dayplanner.core.geo_utils import haversine_distance

# Used when a segment cannot be estimated at all
DEFAULT_TRAVEL_MINUTES = 15


def estimate_travel_time(
    distance_km: float, mode: Literal["auto", "walking", "transit", "driving"] = "auto"
) -> int:
    """
    Estimate travel time in minutes based on distance.

    Args:
        distance_km: Distance in kilometers
        mode: Transportation mode
            - "auto": automatically choose based on distance
            - "walking": ~5 km/h
            - "transit": ~25 km/h + 10 min wait/buffer
            - "driving": ~40 km/h + 5 min parking/buffer

    Returns:
        Travel time in minutes
    """
    if mode == "auto":
        if distance_km < 2.0:
            mode = "walking"
        elif distance_km < 10.0:
            mode = "transit"
        else:
            mode = "driving"

    if mode == "walking":
        return int(distance_km * 12) + 5
    elif mode == "transit":
        return int(distance_km * 2.4) + 10
    elif mode == "driving":
        return int(distance_km * 1.5) + 5
    else:
        return int(distance_km * 5) + 10


def estimate_minutes_between(
    origin: tuple[float, float], destination: tuple[float, float]
) -> int:
    """Straight-line travel estimate between two (lat, lng) points."""
    distance = haversine_distance(origin[0], origin[1], destination[0], destination[1])
    return estimate_travel_time(distance)
