"""
Unit tests for the sensor event dispatcher.

These tests verify:
1. Events are applied to the session in arrival order
2. Session notifications (step, position, sensor_status) are emitted
3. The first-fix wait and its timeout
4. Shutdown and back-pressure behavior

Usage:
    pytest tests/test_dispatcher.py -v
"""
import asyncio
import pytest

from walk_simulator import create_error_event, generate_acceleration_trace, generate_gps_track
from walk_tracker.dispatcher import SensorEventDispatcher, SessionEvent
from walk_tracker.sensors import (
    MotionEvent,
    PositionEvent,
    SensorKind,
    SensorStatus,
    parse_sensor_event,
)


def decode(raw_events):
    return [parse_sensor_event(raw) for raw in raw_events]


@pytest.fixture
def emitted():
    return []


@pytest.fixture
def make_dispatcher(walk_session, emitted):
    """Factory for a dispatcher on the shared session; stopped after the test."""
    created = []

    def _make(**kwargs):
        kwargs.setdefault("on_event", emitted.append)
        dispatcher = SensorEventDispatcher(walk_session, **kwargs)
        created.append(dispatcher)
        return dispatcher

    yield _make

    for dispatcher in created:
        assert dispatcher.running is False, "test must stop its dispatcher"


class TestDispatch:
    """Applying events to the session."""

    @pytest.mark.asyncio
    async def test_dispatch_position(self, walk_session, make_dispatcher, emitted):
        walk_session.start_session()
        dispatcher = make_dispatcher()
        dispatcher.start()

        await dispatcher.dispatch(PositionEvent(latitude=35.0, longitude=139.0, accuracy=5, timestamp=1000))

        assert walk_session.tracker.latest().latitude == 35.0
        assert [e.event_type for e in emitted] == ["position"]
        assert emitted[0].data["distance_m"] == 0
        await dispatcher.stop()

    @pytest.mark.asyncio
    async def test_rejected_fix_emits_nothing(self, walk_session, make_dispatcher, emitted):
        walk_session.start_session()
        dispatcher = make_dispatcher()
        dispatcher.start()

        await dispatcher.dispatch(PositionEvent(latitude=35.0, longitude=139.0, accuracy=120))

        assert emitted == []
        assert dispatcher.processed_count == 1
        await dispatcher.stop()

    @pytest.mark.asyncio
    async def test_motion_stream_in_order(self, walk_session, make_dispatcher, emitted):
        """Steps are only counted correctly when samples arrive in order."""
        walk_session.start_session()
        dispatcher = make_dispatcher()
        dispatcher.start()

        events = decode(generate_acceleration_trace(5))
        for event in events:
            dispatcher.submit(event)
        await dispatcher.drain()

        assert walk_session.steps == 5
        step_events = [e for e in emitted if e.event_type == "step"]
        assert [e.data["steps"] for e in step_events] == [1, 2, 3, 4, 5]
        assert dispatcher.processed_count == len(events)
        await dispatcher.stop()

    @pytest.mark.asyncio
    async def test_walk_distance_reported(self, walk_session, make_dispatcher, emitted):
        walk_session.start_session()
        dispatcher = make_dispatcher()
        dispatcher.start()

        for event in decode(generate_gps_track(3, speed_mps=1.4, interval_s=5)):
            dispatcher.submit(event)
        await dispatcher.drain()

        assert emitted[-1].data["distance_m"] == pytest.approx(14, rel=1e-3)
        assert emitted[-1].data["speed_mps"] == pytest.approx(1.4, rel=1e-3)
        await dispatcher.stop()

    @pytest.mark.asyncio
    async def test_sensor_error_emits_status(self, walk_session, make_dispatcher, emitted):
        dispatcher = make_dispatcher()
        dispatcher.start()

        await dispatcher.dispatch(parse_sensor_event(create_error_event("motion", "permission_denied")))

        assert walk_session.sensor_status[SensorKind.MOTION] == SensorStatus.PERMISSION_DENIED
        assert emitted[0].event_type == "sensor_status"
        assert emitted[0].data == {"sensor": "motion", "status": "permission_denied"}
        await dispatcher.stop()

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_stop_consumer(self, walk_session, make_dispatcher):
        def broken(event: SessionEvent):
            raise RuntimeError("listener down")

        walk_session.start_session()
        dispatcher = make_dispatcher(on_event=broken)
        dispatcher.start()

        await dispatcher.dispatch(PositionEvent(latitude=35.0, longitude=139.0, accuracy=5))
        await dispatcher.dispatch(PositionEvent(latitude=35.0001, longitude=139.0, accuracy=5))

        assert dispatcher.running is True
        assert len(walk_session.tracker.history) == 2
        await dispatcher.stop()

    @pytest.mark.asyncio
    async def test_submit_from_foreign_thread(self, walk_session, make_dispatcher):
        walk_session.start_session()
        dispatcher = make_dispatcher()
        dispatcher.start()

        event = PositionEvent(latitude=35.0, longitude=139.0, accuracy=5)
        await asyncio.to_thread(dispatcher.submit_threadsafe, event)
        await asyncio.sleep(0)
        await dispatcher.drain()

        assert len(walk_session.tracker.history) == 1
        await dispatcher.stop()


class TestFirstFix:
    """Waiting for the first accurate position."""

    @pytest.mark.asyncio
    async def test_timeout_sets_status(self, walk_session, make_dispatcher):
        walk_session.start_session()
        dispatcher = make_dispatcher()
        dispatcher.start()

        result = await dispatcher.wait_for_position(timeout=0.05)

        assert result is None
        assert walk_session.sensor_status[SensorKind.GEOLOCATION] == SensorStatus.TIMEOUT
        await dispatcher.stop()

    @pytest.mark.asyncio
    async def test_returns_first_accurate_fix(self, walk_session, make_dispatcher):
        walk_session.start_session()
        dispatcher = make_dispatcher()
        dispatcher.start()

        waiter = asyncio.create_task(dispatcher.wait_for_position(timeout=5))
        dispatcher.submit(PositionEvent(latitude=35.0, longitude=139.0, accuracy=200))
        dispatcher.submit(PositionEvent(latitude=35.5, longitude=139.5, accuracy=10))

        position = await waiter
        assert (position.latitude, position.longitude) == (35.5, 139.5)
        await dispatcher.stop()

    @pytest.mark.asyncio
    async def test_fix_after_timeout_restores_status(self, walk_session, make_dispatcher):
        walk_session.start_session()
        dispatcher = make_dispatcher()
        dispatcher.start()

        await dispatcher.wait_for_position(timeout=0.01)
        await dispatcher.dispatch(PositionEvent(latitude=35.0, longitude=139.0, accuracy=5))

        assert walk_session.sensor_status[SensorKind.GEOLOCATION] == SensorStatus.AVAILABLE
        await dispatcher.stop()

    @pytest.mark.asyncio
    async def test_second_walk_waits_again(self, walk_session, make_dispatcher):
        dispatcher = make_dispatcher()
        dispatcher.start()

        walk_session.start_session()
        await dispatcher.dispatch(PositionEvent(latitude=35.0, longitude=139.0, accuracy=5))
        assert await dispatcher.wait_for_position(timeout=0.05) is not None
        walk_session.stop_session()

        dispatcher.rearm()
        walk_session.start_session()
        result = await dispatcher.wait_for_position(timeout=0.05)

        assert result is None
        assert walk_session.sensor_status[SensorKind.GEOLOCATION] == SensorStatus.TIMEOUT
        await dispatcher.stop()


class TestShutdown:
    """Stopping and back-pressure."""

    @pytest.mark.asyncio
    async def test_threadsafe_submit_after_stop_is_dropped(self, walk_session, make_dispatcher):
        walk_session.start_session()
        dispatcher = make_dispatcher()
        dispatcher.start()
        await dispatcher.stop()

        event = PositionEvent(latitude=35.0, longitude=139.0, accuracy=5)
        await asyncio.to_thread(dispatcher.submit_threadsafe, event)
        await asyncio.sleep(0)

        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_restart_after_stop(self, walk_session, make_dispatcher):
        walk_session.start_session()
        dispatcher = make_dispatcher()
        dispatcher.start()
        await dispatcher.stop()
        dispatcher.start()

        await dispatcher.dispatch(PositionEvent(latitude=35.0, longitude=139.0, accuracy=5))

        assert len(walk_session.tracker.history) == 1
        await dispatcher.stop()

    @pytest.mark.asyncio
    async def test_dispatch_requires_running_consumer(self, make_dispatcher):
        dispatcher = make_dispatcher()
        with pytest.raises(RuntimeError):
            await dispatcher.dispatch(PositionEvent(latitude=35.0, longitude=139.0, accuracy=5))
        with pytest.raises(RuntimeError):
            await dispatcher.drain()

    @pytest.mark.asyncio
    async def test_stop_discards_pending_events(self, walk_session, make_dispatcher):
        walk_session.start_session()
        dispatcher = make_dispatcher()
        dispatcher.start()

        # The consumer has not been scheduled yet when stop() cancels it
        for event in decode(generate_gps_track(3)):
            dispatcher.submit(event)
        await dispatcher.stop()

        assert dispatcher.running is False
        assert dispatcher.processed_count == 0
        assert len(walk_session.tracker.history) == 0

    @pytest.mark.asyncio
    async def test_queue_full_drops_events(self, make_dispatcher):
        dispatcher = make_dispatcher(max_queue=2)
        sample = MotionEvent(x=0, y=0, z=9.81, timestamp=1)

        assert dispatcher.submit(sample) is True
        assert dispatcher.submit(sample) is True
        assert dispatcher.submit(sample) is False
        assert dispatcher.dropped_count == 1
        await dispatcher.stop()

    @pytest.mark.asyncio
    async def test_threadsafe_submit_before_start_is_dropped(self, make_dispatcher):
        dispatcher = make_dispatcher()
        dispatcher.submit_threadsafe(MotionEvent(x=0, y=0, z=9.81, timestamp=1))
        assert dispatcher.processed_count == 0
        await dispatcher.stop()
