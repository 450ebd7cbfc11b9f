"""
Geo-math primitives for walking tracks.

Haversine distance, speed between fixes, outlier-tolerant track length,
and the accuracy/walking-speed admission checks used before a GPS fix is
trusted. Everything here is pure and never raises on degenerate input.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

EARTH_RADIUS_KM = 6371.0

# Hops at or above this length are GPS glitches, not walking
MAX_JUMP_METERS = 1000.0

ACCURACY_LIMIT_METERS = 50.0

# ~1.8 km/h to 9 km/h
MIN_WALKING_SPEED = 0.5
MAX_WALKING_SPEED = 2.5


@dataclass(frozen=True)
class Position:
    """A geolocation fix. Timestamp is milliseconds since epoch."""

    latitude: float
    longitude: float
    timestamp: Optional[float] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timestamp": self.timestamp,
        }


def calculate_distance(pos1: Position, pos2: Position) -> float:
    """
    Great-circle distance between two fixes in meters (haversine formula).

    Args:
        pos1: First position
        pos2: Second position

    Returns:
        Non-negative distance in meters
    """
    lat1 = math.radians(pos1.latitude)
    lat2 = math.radians(pos2.latitude)
    delta_lat = math.radians(pos2.latitude - pos1.latitude)
    delta_lon = math.radians(pos2.longitude - pos1.longitude)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c * 1000


def calculate_speed(pos1: Position, pos2: Position) -> float:
    """
    Speed between two fixes in m/s.

    Returns 0 when either timestamp is missing or no time has elapsed.
    """
    if not pos1.timestamp or not pos2.timestamp:
        return 0.0

    elapsed_s = (pos2.timestamp - pos1.timestamp) / 1000
    if elapsed_s <= 0:
        return 0.0

    return calculate_distance(pos1, pos2) / elapsed_s


def calculate_total_distance(
    positions: Sequence[Position],
    max_jump: float = MAX_JUMP_METERS,
) -> float:
    """
    Sum of consecutive hop distances, skipping single hops of max_jump or more.

    Args:
        positions: Time-ordered positions
        max_jump: Hop length (meters) treated as a GPS glitch

    Returns:
        Total distance in meters
    """
    if len(positions) < 2:
        return 0.0

    total = 0.0
    for previous, current in zip(positions, positions[1:]):
        hop = calculate_distance(previous, current)
        if hop < max_jump:
            total += hop

    return total


def is_accurate_position(
    accuracy: Optional[float],
    limit: float = ACCURACY_LIMIT_METERS,
) -> bool:
    """True when the reported accuracy radius is known and within limit."""
    if accuracy is None:
        return False
    return accuracy <= limit


def is_moving(pos1: Position, pos2: Position, threshold: float = 5.0) -> bool:
    """True when the fixes are more than threshold meters apart."""
    return calculate_distance(pos1, pos2) > threshold


def is_walking_speed(
    speed: float,
    minimum: float = MIN_WALKING_SPEED,
    maximum: float = MAX_WALKING_SPEED,
) -> bool:
    """True when speed (m/s) is inside the human walking envelope."""
    return minimum <= speed <= maximum


def filter_positions(
    positions: Sequence[Position],
    max_jump: float = MAX_JUMP_METERS,
    min_speed: float = MIN_WALKING_SPEED,
    max_speed: float = MAX_WALKING_SPEED,
) -> List[Position]:
    """
    Drop fixes that imply a glitch jump or a non-walking speed.

    Each fix is compared against the last fix that was kept. A speed of 0
    (missing timestamps) is accepted.
    """
    if len(positions) < 2:
        return list(positions)

    filtered = [positions[0]]
    for current in positions[1:]:
        last_valid = filtered[-1]
        hop = calculate_distance(last_valid, current)
        speed = calculate_speed(last_valid, current)

        if hop < max_jump and (speed == 0 or is_walking_speed(speed, min_speed, max_speed)):
            filtered.append(current)

    return filtered


def format_distance(meters: float) -> str:
    """Human readable distance: "850m" or "1.5km"."""
    if meters < 1000:
        return f"{int(math.floor(meters + 0.5))}m"
    return f"{meters / 1000:.1f}km"


def format_speed(meters_per_second: float) -> str:
    """Human readable speed in km/h."""
    return f"{meters_per_second * 3.6:.1f}km/h"
