"""
Helper utilities for Historical Friction.

Contains angle normalization, direction naming, geodesy and other
utility functions used across multiple modules.
"""

import math

EARTH_RADIUS_M = 6371000.0


def normalize_angle(angle: float) -> float:
    """Normalize an angle to 0-360 range.

    Args:
        angle: Angle in degrees

    Returns:
        Angle normalized to 0-360 range
    """
    return angle % 360


def relative_angle(bearing: float, heading: float) -> float:
    """Angle of a bearing as seen from a heading.

    Args:
        bearing: Absolute bearing to the source in degrees (0=North)
        heading: Listener heading in degrees (0=North)

    Returns:
        Relative angle in the -180 to 180 range (negative = left)
    """
    return (bearing - heading + 180) % 360 - 180


def get_cardinal_direction(angle: float) -> str:
    """Get cardinal direction name from angle.

    Args:
        angle: Facing angle in degrees (0=North, 90=East, 180=South, 270=West)

    Returns:
        Cardinal direction string (North, Northeast, ...)
    """
    names = ("North", "Northeast", "East", "Southeast",
             "South", "Southwest", "West", "Northwest")
    return names[int((normalize_angle(angle) + 22.5) // 45) % 8]


def get_direction_description(rel_angle: float, distance: float) -> str:
    """Convert relative angle to TTS-friendly direction with distance.

    Args:
        rel_angle: Angle relative to the listener heading (-180 to 180)
        distance: Distance in meters

    Returns:
        Human-readable description like "350 meters, ahead left"
    """
    if distance < 1000:
        dist_desc = f"{int(round(distance))} meters"
    else:
        dist_desc = f"{distance / 1000:.1f} kilometers"

    abs_angle = abs(rel_angle)
    if abs_angle <= 22:
        direction = "ahead"
    elif abs_angle <= 67:
        direction = "ahead right" if rel_angle > 0 else "ahead left"
    elif abs_angle <= 112:
        direction = "right" if rel_angle > 0 else "left"
    elif abs_angle <= 157:
        direction = "behind right" if rel_angle > 0 else "behind left"
    else:
        direction = "behind"

    return f"{dist_desc}, {direction}"


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates.

    Args:
        lat1, lon1: First point in degrees
        lat2, lon2: Second point in degrees

    Returns:
        Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (math.sin(d_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2)
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def initial_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial great-circle bearing from the first point to the second.

    Returns:
        Bearing in degrees (0=North, 90=East), 0-360 range
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_lambda = math.radians(lon2 - lon1)

    y = math.sin(d_lambda) * math.cos(phi2)
    x = (math.cos(phi1) * math.sin(phi2) -
         math.sin(phi1) * math.cos(phi2) * math.cos(d_lambda))
    return normalize_angle(math.degrees(math.atan2(y, x)))


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp a value to a range.

    Args:
        value: Value to clamp
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        Clamped value
    """
    return max(min_val, min(max_val, value))
