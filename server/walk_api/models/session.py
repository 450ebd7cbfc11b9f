"""Walk session request and response models."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional

from walk_tracker.sensors import (
    MotionEvent,
    PositionEvent,
    SensorErrorEvent,
    SensorKind,
    SensorStatus,
)


class PositionSample(BaseModel):
    """Geolocation update posted by the browser."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: Optional[float] = Field(default=None, ge=0)
    timestamp: Optional[float] = None

    def to_event(self) -> PositionEvent:
        return PositionEvent(**self.model_dump())


class MotionSample(BaseModel):
    """Accelerometer sample (including gravity) posted by the browser."""

    x: float
    y: float
    z: float
    timestamp: float

    def to_event(self) -> MotionEvent:
        return MotionEvent(**self.model_dump())


class MotionBatch(BaseModel):
    """Accelerometer samples buffered client-side, in arrival order."""

    samples: list[MotionSample] = Field(min_length=1, max_length=500)


class SensorErrorReport(BaseModel):
    """Sensor error or capability condition reported by the browser."""

    sensor: SensorKind
    status: SensorStatus
    message: str = ""

    def to_event(self) -> SensorErrorEvent:
        return SensorErrorEvent(**self.model_dump())


class SensitivityUpdate(BaseModel):
    value: float = Field(ge=0)


class StepCredit(BaseModel):
    """Steps credited by hand (e.g. the +100 / +1000 buttons)."""

    count: int = Field(gt=0, le=100_000)


class SessionSummaryResponse(BaseModel):
    """Aggregate view of the current or just-finished walk."""

    model_config = ConfigDict(populate_by_name=True)

    steps: int
    distance_m: float = Field(serialization_alias="distanceM")
    distance: str
    speed_mps: float = Field(serialization_alias="speedMps")
    speed: str
    elapsed_seconds: float = Field(serialization_alias="elapsedSeconds")
    experience: int
    is_active: bool = Field(serialization_alias="isActive")
    sensitivity: Optional[float] = None
    sensor_status: dict[str, str] = Field(default_factory=dict, serialization_alias="sensorStatus")
    finished_at: Optional[str] = Field(default=None, serialization_alias="finishedAt")


class TrackPoint(BaseModel):
    latitude: float
    longitude: float
    timestamp: Optional[float] = None


class DinosaurState(BaseModel):
    """Pet dinosaur progression."""

    name: str
    species: str
    level: int
    experience: int
    next_level_experience: int
    level_progress_percent: float
    hunger: int
    appearance_state: str
    last_fed: Optional[str] = None
    created_at: str
