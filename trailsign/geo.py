"""
Module: geo
Purpose: Great-circle distance, point-to-line distance and geohash helpers.
"""

from math import asin, cos, degrees, radians, sin, sqrt
from typing import Sequence, Tuple

# Mean Earth radius (IUGG), meters.
EARTH_RADIUS_M = 6371008.8

GEOHASH_BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"

LonLat = Tuple[float, float]


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance in meters using the haversine formula.

    Args:
        lat1, lon1: First point in decimal degrees.
        lat2, lon2: Second point in decimal degrees.

    Returns:
        Distance in meters on a sphere of radius EARTH_RADIUS_M.
    """
    phi1 = radians(lat1)
    phi2 = radians(lat2)
    dphi = phi2 - phi1
    dlmb = radians(lon2 - lon1)
    h = sin(dphi / 2) ** 2 + cos(phi1) * cos(phi2) * sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * asin(min(1.0, sqrt(h)))


def point_to_segment_m(lat: float, lon: float, start: LonLat, end: LonLat) -> float:
    """
    Distance in meters from a point to the segment start-end.

    The segment is projected on a local equirectangular plane centred on the
    point; the foot of the perpendicular is clamped to the segment endpoints
    and the final distance is measured with haversine.

    Args:
        lat, lon: Query point in decimal degrees.
        start, end: Segment endpoints as (lon, lat) pairs.
    """
    scale_x = EARTH_RADIUS_M * cos(radians(lat))
    ax = radians(start[0] - lon) * scale_x
    ay = radians(start[1] - lat) * EARTH_RADIUS_M
    bx = radians(end[0] - lon) * scale_x
    by = radians(end[1] - lat) * EARTH_RADIUS_M
    dx = bx - ax
    dy = by - ay
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return haversine_m(lat, lon, start[1], start[0])
    # Point sits at the origin of the local plane.
    t = -(ax * dx + ay * dy) / length_sq
    t = max(0.0, min(1.0, t))
    if t == 0.0:
        return haversine_m(lat, lon, start[1], start[0])
    if t == 1.0:
        return haversine_m(lat, lon, end[1], end[0])
    foot_x = ax + t * dx
    foot_y = ay + t * dy
    foot_lat = lat + degrees(foot_y / EARTH_RADIUS_M)
    foot_lon = lon + degrees(foot_x / scale_x) if scale_x else lon
    return haversine_m(lat, lon, foot_lat, foot_lon)


def point_to_line_m(lat: float, lon: float, coordinates: Sequence[LonLat]) -> float:
    """
    Minimum distance in meters from a point to a polyline.

    Raises:
        ValueError: If the polyline has fewer than two coordinates.
    """
    if len(coordinates) < 2:
        raise ValueError("A line needs at least two coordinates")
    best = float("inf")
    for start, end in zip(coordinates, coordinates[1:]):
        distance = point_to_segment_m(lat, lon, start, end)
        if distance < best:
            best = distance
    return best


def geohash_encode(lat: float, lon: float, precision: int = 6) -> str:
    """
    Encode a coordinate as a base32 geohash of the given length.
    """
    lat_range = [-90.0, 90.0]
    lon_range = [-180.0, 180.0]
    chars = []
    bit = 0
    value = 0
    even = True
    while len(chars) < precision:
        if even:
            mid = (lon_range[0] + lon_range[1]) / 2
            if lon > mid:
                value = (value << 1) | 1
                lon_range[0] = mid
            else:
                value <<= 1
                lon_range[1] = mid
        else:
            mid = (lat_range[0] + lat_range[1]) / 2
            if lat > mid:
                value = (value << 1) | 1
                lat_range[0] = mid
            else:
                value <<= 1
                lat_range[1] = mid
        even = not even
        bit += 1
        if bit == 5:
            chars.append(GEOHASH_BASE32[value])
            bit = 0
            value = 0
    return "".join(chars)
