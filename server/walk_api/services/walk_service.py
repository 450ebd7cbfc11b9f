"""Owner of the server's walk session, dispatcher and dinosaur."""
import asyncio
import logging
from typing import Any, Dict, Optional

from walk_tracker.config import TrackerSettings, get_tracker_settings
from walk_tracker.dinosaur import DinosaurProgress
from walk_tracker.dispatcher import SensorEventDispatcher, SessionEvent
from walk_tracker.lifecycle import initialize_walk_listener
from walk_tracker.session import SessionSummary, WalkSession
from walk_tracker.user_store import hand_off_steps

from ..config import Settings, get_settings
from .event_queue import event_queue

log = logging.getLogger(__name__)


class WalkService:
    """
    Holds the single walk session served by this API.

    The session, dispatcher and inactivity watchdog are created at
    application startup, inside the server's event loop, and torn down at
    shutdown.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        tracker_settings: Optional[TrackerSettings] = None,
    ):
        self.settings = settings or get_settings()
        self.tracker_settings = tracker_settings
        self.dinosaur = DinosaurProgress()
        self.session: Optional[WalkSession] = None
        self.dispatcher: Optional[SensorEventDispatcher] = None
        self.listener_status: Optional[Dict[str, Any]] = None
        self._watchdog: Optional[asyncio.Task] = None

    async def startup(self) -> None:
        tracker_settings = self.tracker_settings or get_tracker_settings()
        self.session = WalkSession(settings=tracker_settings, dinosaur=self.dinosaur)
        self.dispatcher = SensorEventDispatcher(self.session, on_event=event_queue.publish)
        self.dispatcher.start()
        self._watchdog = asyncio.create_task(
            self._watch_inactivity(tracker_settings.inactivity_check_interval_s)
        )
        log.info("[API] Walk service started")

    async def shutdown(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            try:
                await self._watchdog
            except asyncio.CancelledError:
                pass
            self._watchdog = None
        if self.session is not None and self.session.is_active:
            await self.stop()
        if self.dispatcher is not None:
            await self.dispatcher.stop()
        log.info("[API] Walk service stopped")

    def start(self) -> SessionSummary:
        if not self.session.is_active:
            self.dispatcher.rearm()
        self.session.start_session()

        if self.settings.listen_on_mesh:
            self.listener_status = initialize_walk_listener(
                self.session, self.dispatcher, self.settings.user_id
            )

        event_queue.publish(SessionEvent(event_type="session_started", data={}))
        return self.session.summary()

    async def stop(self) -> SessionSummary:
        # Samples already queued belong to this walk
        if self.dispatcher.running:
            await self.dispatcher.drain()
        summary = self.session.stop_session()
        await self._finish(summary)
        return summary

    def add_steps(self, count: int) -> SessionSummary:
        """Manually credit steps to the current walk."""
        self.session.add_steps(count)
        event_queue.publish(
            SessionEvent(event_type="step", data={"steps": self.session.steps, "manual": count})
        )
        return self.session.summary()

    async def _finish(self, summary: SessionSummary) -> None:
        event_queue.publish(
            SessionEvent(event_type="session_stopped", data=summary.to_dict())
        )

        if self.settings.hand_off_steps and summary.steps > 0:
            await asyncio.to_thread(hand_off_steps, self.settings.user_id, summary.steps)

    async def _watch_inactivity(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                if self.session.check_inactivity():
                    await self._finish(self.session.last_summary)
            except Exception as e:
                log.error(f"[API] Inactivity check failed: {e}")


# Singleton instance
walk_service = WalkService()
