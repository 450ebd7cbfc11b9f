"""Pydantic models for walk API requests and responses."""
from .session import (
    PositionSample,
    MotionSample,
    MotionBatch,
    SensorErrorReport,
    SensitivityUpdate,
    SessionSummaryResponse,
    StepCredit,
    TrackPoint,
    DinosaurState,
)

__all__ = [
    "PositionSample",
    "MotionSample",
    "MotionBatch",
    "SensorErrorReport",
    "SensitivityUpdate",
    "SessionSummaryResponse",
    "StepCredit",
    "TrackPoint",
    "DinosaurState",
]
