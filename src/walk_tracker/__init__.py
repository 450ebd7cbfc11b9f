"""
Walk Tracker Module.

Turns phone sensor feeds into walking statistics for DinoWalk: step
detection from the accelerometer, distance and speed from GPS fixes, and
the session that ties both together.
"""

from .geo_utils import (
    Position,
    calculate_distance,
    calculate_speed,
    calculate_total_distance,
    is_accurate_position,
    is_walking_speed,
    format_distance,
    format_speed,
)
from .position_tracker import PositionHistory, PositionTracker
from .step_detector import AccelerationSample, StepDetector
from .session import SessionSummary, WalkSession
from .sensors import SensorKind, SensorStatus, parse_sensor_event
from .dispatcher import SensorEventDispatcher, SessionEvent

__all__ = [
    "Position",
    "calculate_distance",
    "calculate_speed",
    "calculate_total_distance",
    "is_accurate_position",
    "is_walking_speed",
    "format_distance",
    "format_speed",
    "PositionHistory",
    "PositionTracker",
    "AccelerationSample",
    "StepDetector",
    "SessionSummary",
    "WalkSession",
    "SensorKind",
    "SensorStatus",
    "parse_sensor_event",
    "SensorEventDispatcher",
    "SessionEvent",
]
