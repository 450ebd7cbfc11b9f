"""
Sensor Event Models.

Typed events for the geolocation and motion feeds, and decoding of raw
payloads (dicts or JSON strings) into those events. Malformed payloads are
treated as low-quality samples: dropped with a debug log, never raised.
"""

import json
import logging
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ValidationError

from .geo_utils import Position
from .step_detector import AccelerationSample

logger = logging.getLogger(__name__)


class SensorKind(str, Enum):
    """Sensor feeds consumed by a walk session."""

    GEOLOCATION = "geolocation"
    MOTION = "motion"


class SensorStatus(str, Enum):
    """Availability of a sensor feed."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    PERMISSION_DENIED = "permission_denied"
    TIMEOUT = "timeout"
    POSITION_UNAVAILABLE = "position_unavailable"


# Statuses that switch a feed off until the session is restarted or reauthorized
DISABLING_STATUSES = {SensorStatus.UNAVAILABLE, SensorStatus.PERMISSION_DENIED}


class PositionEvent(BaseModel):
    """Geolocation update from the device."""

    type: Literal["position"] = "position"
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    timestamp: Optional[float] = None

    def to_position(self) -> Position:
        return Position(self.latitude, self.longitude, self.timestamp)


class MotionEvent(BaseModel):
    """Accelerometer sample including gravity."""

    type: Literal["motion"] = "motion"
    x: float
    y: float
    z: float
    timestamp: float

    def to_sample(self) -> AccelerationSample:
        return AccelerationSample(self.x, self.y, self.z, self.timestamp)


class SensorErrorEvent(BaseModel):
    """Error condition reported by a sensor feed."""

    type: Literal["error"] = "error"
    sensor: SensorKind
    status: SensorStatus
    message: str = ""


SensorEvent = Union[PositionEvent, MotionEvent, SensorErrorEvent]

_EVENT_MODELS = {
    "position": PositionEvent,
    "motion": MotionEvent,
    "error": SensorErrorEvent,
}


def parse_sensor_event(payload: Union[str, bytes, dict, Any]) -> Optional[SensorEvent]:
    """
    Decode a raw sensor payload.

    Args:
        payload: JSON string/bytes or dict with a "type" of
            position, motion or error

    Returns:
        The typed event, or None when the payload is malformed
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            logger.debug(f"[SENSOR] Dropped undecodable payload: {e}")
            return None

    if not isinstance(payload, dict):
        logger.debug(f"[SENSOR] Dropped non-object payload: {type(payload).__name__}")
        return None

    model = _EVENT_MODELS.get(payload.get("type"))
    if model is None:
        logger.debug(f"[SENSOR] Dropped payload with unknown type: {payload.get('type')}")
        return None

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.debug(f"[SENSOR] Dropped malformed {payload.get('type')} sample: {e.error_count()} errors")
        return None
