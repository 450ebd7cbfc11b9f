"""
Sensor Event Dispatcher.

Sensor feeds deliver events asynchronously from whatever thread the host
uses. The dispatcher funnels them through one asyncio.Queue into a single
consumer task, so a WalkSession only ever sees one event at a time and in
arrival order.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from .geo_utils import Position
from .sensors import (
    MotionEvent,
    PositionEvent,
    SensorErrorEvent,
    SensorEvent,
    SensorKind,
    SensorStatus,
)
from .session import WalkSession

logger = logging.getLogger(__name__)


@dataclass
class SessionEvent:
    """Notification emitted after a sensor event changed the session."""

    event_type: str  # step, position, sensor_status
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "event_type": self.event_type,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


class SensorEventDispatcher:
    """
    Single-consumer event loop feeding a WalkSession.

    Args:
        session: The session that owns the sensor state
        on_event: Optional callback receiving SessionEvent notifications
        max_queue: Queue bound; events are dropped when it is full
    """

    def __init__(
        self,
        session: WalkSession,
        on_event: Optional[Callable[[SessionEvent], None]] = None,
        max_queue: int = 1000,
    ):
        self.session = session
        self.on_event = on_event
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._consumer: Optional[asyncio.Task] = None
        self._first_fix: Optional[asyncio.Event] = None
        self.processed_count = 0
        self.dropped_count = 0

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    @property
    def pending(self) -> int:
        """Events queued but not yet applied."""
        return self._queue.qsize()

    def start(self) -> None:
        """Spawn the consumer task on the running event loop."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._first_fix = asyncio.Event()
        self._consumer = self._loop.create_task(self._consume())
        logger.info("[DISPATCH] Consumer started")

    def rearm(self) -> None:
        """Forget the previous walk's first fix so wait_for_position waits again."""
        self._first_fix = asyncio.Event()

    async def stop(self) -> None:
        """Cancel the consumer and discard anything still queued."""
        self._loop = None
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None

        discarded = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            discarded += 1

        logger.info(
            f"[DISPATCH] Consumer stopped after {self.processed_count} events "
            f"({discarded} discarded)"
        )

    def submit(self, event: SensorEvent) -> bool:
        """Enqueue an event from the loop thread without waiting."""
        try:
            self._queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            self.dropped_count += 1
            logger.warning("[DISPATCH] Queue full, dropping sensor event")
            return False

    def submit_threadsafe(self, event: SensorEvent) -> None:
        """Enqueue an event from a foreign thread (mesh callbacks)."""
        if self._loop is None or self._loop.is_closed():
            logger.debug("[DISPATCH] Not running, dropping sensor event")
            return
        self._loop.call_soon_threadsafe(self.submit, event)

    async def dispatch(self, event: SensorEvent) -> None:
        """Enqueue an event and wait until the queue has been drained."""
        if not self.running:
            raise RuntimeError("Dispatcher is not running")
        if self.submit(event):
            await self.drain()

    async def drain(self) -> None:
        """Wait until every queued event has been applied."""
        if not self.running:
            raise RuntimeError("Dispatcher is not running")
        await self._queue.join()

    async def wait_for_position(self, timeout: Optional[float] = None) -> Optional[Position]:
        """
        Wait for the first accurate fix of this session.

        On timeout the geolocation status is set to timeout and None is
        returned; the caller decides whether to keep waiting.
        """
        if timeout is None:
            timeout = self.session.settings.geolocation_timeout_s
        if self._first_fix is None:
            self._first_fix = asyncio.Event()

        try:
            await asyncio.wait_for(self._first_fix.wait(), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[GPS] No accurate fix within {timeout}s")
            self.session.report_sensor_error(SensorKind.GEOLOCATION, SensorStatus.TIMEOUT)
            return None

        return self.session.tracker.latest()

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self._apply(event)
                self.processed_count += 1
            except Exception as e:
                logger.error(f"[DISPATCH] Failed to apply {type(event).__name__}: {e}")
            finally:
                self._queue.task_done()

    def _apply(self, event: SensorEvent) -> None:
        if isinstance(event, MotionEvent):
            if self.session.observe_acceleration(event.to_sample()):
                self._emit("step", {"steps": self.session.steps, "timestamp": event.timestamp})

        elif isinstance(event, PositionEvent):
            position = event.to_position()
            if self.session.observe_position(position, event.accuracy):
                if self._first_fix is not None:
                    self._first_fix.set()
                self._emit(
                    "position",
                    {
                        **position.to_dict(),
                        "distance_m": self.session.distance,
                        "speed_mps": self.session.speed,
                    },
                )

        elif isinstance(event, SensorErrorEvent):
            self.session.report_sensor_error(event.sensor, event.status)
            self._emit(
                "sensor_status",
                {"sensor": event.sensor.value, "status": event.status.value},
            )

    def _emit(self, event_type: str, data: Dict[str, Any]) -> None:
        if self.on_event is None:
            return
        try:
            self.on_event(SessionEvent(event_type=event_type, data=data))
        except Exception as e:
            logger.error(f"[DISPATCH] Event listener failed: {e}")
