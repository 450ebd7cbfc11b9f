"""Thread-safe in-memory session event queue for real-time notifications.

Step, position and sensor-status events emitted by the sensor dispatcher
are fanned out to every connected SSE client. A short history lets a new
connection catch up.
"""
import asyncio
import threading
from collections import deque
from typing import AsyncIterator

from walk_tracker.dispatcher import SessionEvent


class SessionEventQueue:
    """Publish-subscribe queue for walk session events."""

    def __init__(self, max_history: int = 100):
        """Initialize the event queue.

        Args:
            max_history: Maximum number of events to keep in history buffer.
        """
        self._history: deque[SessionEvent] = deque(maxlen=max_history)
        self._subscribers: list[asyncio.Queue] = []
        self._lock = threading.Lock()
        self._stats = {
            "total_published": 0,
            "total_subscribers": 0,
            "events_by_type": {},
        }

    def publish(self, event: SessionEvent) -> None:
        """Publish an event to all subscribers.

        Must be called from the event loop thread (the dispatcher consumer
        and the API routes both are).

        Args:
            event: The session event to publish.
        """
        with self._lock:
            self._history.append(event)

            self._stats["total_published"] += 1
            self._stats["events_by_type"][event.event_type] = \
                self._stats["events_by_type"].get(event.event_type, 0) + 1

            # Slow subscribers whose queue filled up are dropped
            dead_subscribers = []
            for queue in self._subscribers:
                try:
                    queue.put_nowait(event)
                except asyncio.QueueFull:
                    dead_subscribers.append(queue)

            for queue in dead_subscribers:
                self._subscribers.remove(queue)

    async def subscribe(
        self,
        include_history: bool = True,
        history_count: int = 10
    ) -> AsyncIterator[SessionEvent]:
        """Subscribe to session events via async generator.

        Args:
            include_history: Whether to yield recent events first.
            history_count: Number of recent events to include from history.

        Yields:
            SessionEvent objects as they arrive.
        """
        queue: asyncio.Queue[SessionEvent] = asyncio.Queue(maxsize=100)

        with self._lock:
            self._subscribers.append(queue)
            self._stats["total_subscribers"] += 1

            if include_history and history_count:
                for event in list(self._history)[-history_count:]:
                    queue.put_nowait(event)

        try:
            while True:
                event = await queue.get()
                yield event
        finally:
            with self._lock:
                if queue in self._subscribers:
                    self._subscribers.remove(queue)

    def get_history(self, count: int = 50) -> list[SessionEvent]:
        """Get recent events, newest first."""
        with self._lock:
            return list(self._history)[-count:][::-1]

    def get_stats(self) -> dict:
        with self._lock:
            return {
                **self._stats,
                "current_subscribers": len(self._subscribers),
                "history_size": len(self._history),
            }

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()


# Global singleton instance
event_queue = SessionEventQueue()
