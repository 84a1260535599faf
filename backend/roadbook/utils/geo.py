import math
from typing import Iterable

EARTH_RADIUS_KM = 6371.0

MIN_REGION_SPAN = 0.01
REGION_PADDING = 1.1


def haversine(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in km between two points."""
    lat1, lng1, lat2, lng2 = map(math.radians, [lat1, lng1, lat2, lng2])
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def path_distance_km(points: Iterable[tuple[float, float]]) -> float:
    """Sum of great-circle distances between consecutive (lat, lng) points."""
    total = 0.0
    prev = None
    for lat, lng in points:
        if prev is not None:
            total += haversine(prev[0], prev[1], lat, lng)
        prev = (lat, lng)
    return total


def bounding_region(
    points: list[tuple[float, float]],
) -> tuple[tuple[float, float], float, float] | None:
    """
    Viewport around a set of (lat, lng) points.

    Returns ((center_lat, center_lng), lat_span, lng_span), or None when there
    are no points. Each span is floored at MIN_REGION_SPAN before padding so a
    single point or a straight meridian still gets a usable viewport.
    """
    if not points:
        return None

    lats = [p[0] for p in points]
    lngs = [p[1] for p in points]
    min_lat, max_lat = min(lats), max(lats)
    min_lng, max_lng = min(lngs), max(lngs)

    center = ((min_lat + max_lat) / 2, (min_lng + max_lng) / 2)
    lat_span = max(max_lat - min_lat, MIN_REGION_SPAN) * REGION_PADDING
    lng_span = max(max_lng - min_lng, MIN_REGION_SPAN) * REGION_PADDING
    return center, lat_span, lng_span
