"""
Geospatial helpers for proximity searches.
"""
import logging
import math
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from app.core.errors import InvalidCoordinates

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in kilometers.

    Args:
        lat1: Latitude of the first point in decimal degrees
        lon1: Longitude of the first point in decimal degrees
        lat2: Latitude of the second point in decimal degrees
        lon2: Longitude of the second point in decimal degrees

    Returns:
        Distance in kilometers
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    # clamp rounding drift so sqrt(1 - a) stays real near antipodes
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def parse_coordinate(value: Any, name: str = "coordinate") -> float:
    """
    Convert a stored coordinate (number or decimal string) to a finite float.

    Raises:
        InvalidCoordinates: If the value is missing, non-numeric, NaN or infinite
    """
    if isinstance(value, bool) or value is None:
        raise InvalidCoordinates(f"Invalid {name}: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidCoordinates(f"Invalid {name}: {value!r}")
    if not math.isfinite(number):
        raise InvalidCoordinates(f"Invalid {name}: {value!r}")
    return number


def parse_point(latitude: Any, longitude: Any) -> Tuple[float, float]:
    """Parse a latitude/longitude pair, raising InvalidCoordinates on either half."""
    return parse_coordinate(latitude, "latitude"), parse_coordinate(longitude, "longitude")


def total_trip_distance_km(agent: Tuple[float, float], kitchen: Tuple[float, float],
                           destination: Tuple[float, float]) -> float:
    """
    Round trip an agent drives for one refill: to the kitchen, out to the
    machine, and back to the kitchen with the empty canister.
    """
    total = (
        haversine_km(*agent, *kitchen)
        + haversine_km(*kitchen, *destination)
        + haversine_km(*destination, *kitchen)
    )
    return round(total, 2)


def within_first_radius(origin: Tuple[float, float], points: Iterable[Tuple[str, Any, Any]],
                        radii: Sequence[float], exclude: Iterable[str] = ()) -> Tuple[List[str], Optional[float]]:
    """
    Expanding-radius search: ids of the points inside the first radius that
    holds at least one of them.

    Points whose coordinates do not parse are skipped.

    Args:
        origin: Search center as (latitude, longitude)
        points: (id, latitude, longitude) triples
        radii: Radii in kilometers, tried in order
        exclude: Ids that must never be returned

    Returns:
        Matching ids in input order and the radius that produced them,
        or ``([], None)`` when no radius yields anything
    """
    excluded = set(exclude)
    distances = []
    for point_id, latitude, longitude in points:
        if point_id in excluded:
            continue
        try:
            point = parse_point(latitude, longitude)
        except InvalidCoordinates:
            logger.debug(f"Skipping {point_id} with unusable coordinates")
            continue
        distances.append((point_id, haversine_km(*origin, *point)))

    for radius in radii:
        found = [point_id for point_id, distance in distances if distance <= radius]
        if found:
            return found, radius
    return [], None
