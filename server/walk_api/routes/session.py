"""Walk session API routes.

Sensor samples are routed through the dispatcher so they are applied to
the session in order; each sample route answers once its sample has been
applied.
"""
import json
from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from walk_tracker.sensors import SensorKind
from walk_tracker.session import SessionSummary

from ..models.session import (
    DinosaurState,
    MotionBatch,
    MotionSample,
    PositionSample,
    SensitivityUpdate,
    SensorErrorReport,
    SessionSummaryResponse,
    StepCredit,
    TrackPoint,
)
from ..services.event_queue import event_queue
from ..services.walk_service import walk_service

router = APIRouter(prefix="/api/session", tags=["Session"])


def _to_response(summary: SessionSummary) -> SessionSummaryResponse:
    """Convert a SessionSummary to its API model."""
    return SessionSummaryResponse(
        **summary.to_dict(),
        sensitivity=walk_service.session.sensitivity,
    )


@router.get("", response_model=SessionSummaryResponse)
async def get_session():
    """Current steps, distance, speed and elapsed time."""
    return _to_response(walk_service.session.summary())


@router.post("/start", response_model=SessionSummaryResponse)
async def start_session():
    """Start counting steps and distance. Starting twice is a no-op."""
    return _to_response(walk_service.start())


@router.post("/stop", response_model=SessionSummaryResponse)
async def stop_session():
    """
    Finish the walk.

    Sensor subscriptions are released first, then the summary is
    finalized and the session state cleared. The step total is handed to
    the user-record store.
    """
    return _to_response(await walk_service.stop())


@router.post("/reset", response_model=SessionSummaryResponse)
async def reset_session():
    """Zero steps and distance without ending the walk."""
    walk_service.session.reset_session()
    return _to_response(walk_service.session.summary())


@router.post("/position", response_model=SessionSummaryResponse)
async def observe_position(sample: PositionSample):
    """Apply a geolocation update. Inaccurate fixes are silently ignored."""
    await walk_service.dispatcher.dispatch(sample.to_event())
    return _to_response(walk_service.session.summary())


@router.post("/motion", response_model=SessionSummaryResponse)
async def observe_motion(sample: MotionSample):
    """Apply one accelerometer sample."""
    await walk_service.dispatcher.dispatch(sample.to_event())
    return _to_response(walk_service.session.summary())


@router.post("/motion/batch", response_model=SessionSummaryResponse)
async def observe_motion_batch(batch: MotionBatch):
    """Apply buffered accelerometer samples in order."""
    for sample in batch.samples:
        walk_service.dispatcher.submit(sample.to_event())
    await walk_service.dispatcher.drain()
    return _to_response(walk_service.session.summary())


@router.post("/sensor-error", response_model=SessionSummaryResponse)
async def report_sensor_error(report: SensorErrorReport):
    """Record a sensor error such as permission denied or timeout."""
    await walk_service.dispatcher.dispatch(report.to_event())
    return _to_response(walk_service.session.summary())


@router.post("/reauthorize/{sensor}", response_model=SessionSummaryResponse)
async def reauthorize_sensor(sensor: SensorKind):
    """Re-enable a sensor after the user granted permission again."""
    walk_service.session.reauthorize(sensor)
    return _to_response(walk_service.session.summary())


@router.post("/steps", response_model=SessionSummaryResponse)
async def add_steps(credit: StepCredit):
    """Credit steps by hand without accelerometer samples."""
    return _to_response(walk_service.add_steps(credit.count))


@router.put("/sensitivity", response_model=SessionSummaryResponse)
async def set_sensitivity(update: SensitivityUpdate):
    """Tune the step detection threshold."""
    walk_service.session.set_sensitivity(update.value)
    return _to_response(walk_service.session.summary())


@router.get("/track", response_model=list[TrackPoint])
async def get_track():
    """Position history with glitch jumps and non-walking hops removed."""
    return [TrackPoint(**p.to_dict()) for p in walk_service.session.filtered_track()]


@router.get("/dinosaur", response_model=DinosaurState)
async def get_dinosaur():
    """The pet dinosaur, credited with steps from finished walks."""
    return DinosaurState(**walk_service.dinosaur.to_dict())


@router.get("/events/stream")
async def stream_session_events(
    include_history: bool = Query(True, description="Include recent events on connect"),
    history_count: int = Query(10, ge=0, le=50, description="Number of historical events")
):
    """
    Stream session events via Server-Sent Events (SSE).

    Event types: step, position, sensor_status, session_started,
    session_stopped. The stream never closes; clients should reconnect.

    Usage with curl:
        curl -N http://localhost:8083/api/session/events/stream
    """
    async def event_generator():
        async for event in event_queue.subscribe(
            include_history=include_history,
            history_count=history_count
        ):
            data = json.dumps(event.to_dict())
            yield f"event: {event.event_type}\ndata: {data}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        }
    )


@router.get("/events/history")
async def get_event_history(
    count: int = Query(50, ge=1, le=100, description="Number of events to return")
):
    """Recent session events, newest first."""
    return [event.to_dict() for event in event_queue.get_history(count)]
