"""Straight-line geometry in miles. No road routing."""

import math

EARTH_RADIUS_MILES = 3959.0


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in miles."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def detour_miles(
    start: tuple[float, float],
    destination: tuple[float, float],
    pickup: tuple[float, float],
    delivery: tuple[float, float],
) -> float:
    """Extra miles from routing start → pickup → delivery → destination
    instead of start → destination. Never negative."""
    direct = haversine_miles(*start, *destination)
    via_load = (
        haversine_miles(*start, *pickup)
        + haversine_miles(*pickup, *delivery)
        + haversine_miles(*delivery, *destination)
    )
    return max(0.0, via_load - direct)
