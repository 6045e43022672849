"""Great-circle distance, bearing and movement classification between two fixes."""

import math
from typing import Optional

from locus.config import SIGNIFICANT_MOVEMENT_M, STATIONARY_THRESHOLD_M
from locus.models import Coordinate, LocationComparison, MovementResult, MovementType

EARTH_RADIUS_M = 6_371_000.0

# (upper bound in km/h, type), checked in order
SPEED_CLASSES = (
    (5.0, MovementType.WALKING),
    (25.0, MovementType.CYCLING),
    (80.0, MovementType.DRIVING),
)

# (max distance in meters, label) for GPS vs IP agreement
AGREEMENT_BANDS = (
    (25_000.0, "same_city"),
    (200_000.0, "same_region"),
    (1_000_000.0, "same_country"),
)


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Compute Haversine distance in meters between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Distance in meters on a sphere of radius 6,371 km.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    # rounding can push a slightly above 1 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def initial_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Forward azimuth from point 1 to point 2, in degrees within [0, 360)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_lambda = math.radians(lon2 - lon1)

    y = math.sin(d_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lambda)
    bearing = math.degrees(math.atan2(y, x)) % 360.0
    # tiny negative angles modulo 360 can round up to 360.0
    return 0.0 if bearing >= 360.0 else bearing


def classify_movement(distance_m: float, speed_kmh: float) -> MovementType:
    if distance_m < STATIONARY_THRESHOLD_M:
        return MovementType.STATIONARY
    for limit, movement_type in SPEED_CLASSES:
        if speed_kmh < limit:
            return movement_type
    return MovementType.HIGH_SPEED


def analyze_movement(previous: Coordinate, current: Coordinate) -> MovementResult:
    """
    Compare two timestamped fixes.

    Args:
        previous (Coordinate): Earlier fix.
        current (Coordinate): Later fix.

    Returns:
        MovementResult: Distance, bearing, speed and movement type. Speed is 0
                        when the time delta is zero or negative.
    """
    distance = haversine_m(previous.latitude, previous.longitude, current.latitude, current.longitude)
    bearing = initial_bearing(previous.latitude, previous.longitude, current.latitude, current.longitude)
    delta_ms = int(current.timestamp_millis - previous.timestamp_millis)

    speed_kmh = 0.0
    if delta_ms > 0:
        speed_kmh = distance / (delta_ms / 1000.0) * 3.6

    return MovementResult(
        distance_meters=distance,
        time_delta_millis=delta_ms,
        speed_kmh=speed_kmh,
        bearing_degrees=bearing,
        movement_type=classify_movement(distance, speed_kmh),
        is_significant=distance > SIGNIFICANT_MOVEMENT_M,
    )


def compare_locations(
    gps: Coordinate,
    ip_latitude: float,
    ip_longitude: float,
    gps_accuracy_m: Optional[float] = None,
) -> LocationComparison:
    """Distance between a browser fix and the IP-derived point, with an agreement label."""
    distance = haversine_m(gps.latitude, gps.longitude, ip_latitude, ip_longitude)
    agreement = "inconsistent"
    for limit, label in AGREEMENT_BANDS:
        if distance <= limit:
            agreement = label
            break
    return LocationComparison(
        distance_meters=distance,
        agreement=agreement,
        gps_quality=assess_location_quality(gps_accuracy_m),
    )


def assess_location_quality(accuracy_m: Optional[float]) -> str:
    if accuracy_m is None or accuracy_m < 0:
        return "unknown"
    if accuracy_m <= 10:
        return "excellent"
    if accuracy_m <= 50:
        return "good"
    if accuracy_m <= 500:
        return "fair"
    return "poor"
