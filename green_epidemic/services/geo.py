"""
geo.py — Great-circle distance helpers.

One haversine routine, in metres, is used everywhere (fan-out radius checks
and weather station lookups); callers convert to km where they need it.
"""

from math import atan2, cos, radians, sin, sqrt

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in metres between two (lat, lon) points given in degrees."""
    phi1 = radians(lat1)
    phi2 = radians(lat2)
    d_phi = radians(lat2 - lat1)
    d_lambda = radians(lon2 - lon1)

    a = sin(d_phi / 2) ** 2 + cos(phi1) * cos(phi2) * sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * atan2(sqrt(a), sqrt(1 - a))


def bounding_box(lat: float, lon: float, radius_km: float) -> tuple[float, float, float, float]:
    """
    Rough (min_lat, max_lat, min_lon, max_lon) box around a point.

    1° latitude ≈ 111 km; longitude degrees shrink with cos(latitude).
    Used as a coarse pre-filter before the exact haversine check.
    """
    lat_delta = radius_km / 111.0
    cos_lat = cos(radians(lat))
    lon_delta = 180.0 if cos_lat < 1e-6 else radius_km / (111.0 * cos_lat)
    return lat - lat_delta, lat + lat_delta, lon - lon_delta, lon + lon_delta


def longitude_ranges(min_lon: float, max_lon: float) -> list[tuple[float, float]]:
    """
    Split a bounding-box longitude span into ranges inside [-180, 180].

    A box that crosses the antimeridian becomes two ranges, one on each side.
    """
    if max_lon - min_lon >= 360.0:
        return [(-180.0, 180.0)]
    if min_lon < -180.0:
        return [(min_lon + 360.0, 180.0), (-180.0, max_lon)]
    if max_lon > 180.0:
        return [(min_lon, 180.0), (-180.0, max_lon - 360.0)]
    return [(min_lon, max_lon)]
