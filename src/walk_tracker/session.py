"""
Walk Session Module.

A WalkSession owns everything a walk needs: the step detector, the
position tracker, sensor status flags and the handles (sensor
subscriptions, keep-awake locks) that must be released when the walk ends.
All mutation happens under one lock so sensor callbacks are applied
sequentially.

Stopping follows a strict order so a late callback cannot touch reset
state: (1) release handles, (2) finalize the summary, (3) clear state.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .config import TrackerSettings, get_tracker_settings
from .dinosaur import DinosaurProgress, experience_for_steps
from .geo_utils import Position, format_distance, format_speed
from .position_tracker import PositionTracker
from .sensors import DISABLING_STATUSES, SensorKind, SensorStatus
from .step_detector import AccelerationSample, StepDetector

logger = logging.getLogger(__name__)


@dataclass
class SessionSummary:
    """Read-only aggregate of a walk: steps, distance, speed, elapsed time."""

    steps: int = 0
    distance_m: float = 0.0
    speed_mps: float = 0.0
    elapsed_seconds: float = 0.0
    is_active: bool = False
    sensor_status: Dict[str, str] = field(default_factory=dict)
    finished_at: Optional[datetime] = None

    @property
    def experience(self) -> int:
        return experience_for_steps(self.steps)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "steps": self.steps,
            "distance_m": self.distance_m,
            "distance": format_distance(self.distance_m),
            "speed_mps": self.speed_mps,
            "speed": format_speed(self.speed_mps),
            "elapsed_seconds": self.elapsed_seconds,
            "experience": self.experience,
            "is_active": self.is_active,
            "sensor_status": dict(self.sensor_status),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class WalkSession:
    """
    Explicitly owned walking session.

    Usable as a context manager: entering starts the session, leaving
    stops it and releases every attached handle.
    """

    def __init__(
        self,
        settings: Optional[TrackerSettings] = None,
        dinosaur: Optional[DinosaurProgress] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or get_tracker_settings()
        self.dinosaur = dinosaur
        self._clock = clock
        self._lock = threading.RLock()

        self.detector = StepDetector(
            sensitivity=self.settings.sensitivity,
            window_size=self.settings.window_size,
            min_step_interval_ms=self.settings.min_step_interval_ms,
            max_step_interval_ms=self.settings.max_step_interval_ms,
        )
        self.tracker = PositionTracker(
            history_limit=self.settings.history_limit,
            accuracy_limit=self.settings.accuracy_limit_m,
            max_jump=self.settings.max_jump_m,
            walking_speed=(
                self.settings.min_walking_speed_mps,
                self.settings.max_walking_speed_mps,
            ),
        )

        self.sensor_status: Dict[SensorKind, SensorStatus] = {
            SensorKind.GEOLOCATION: SensorStatus.AVAILABLE,
            SensorKind.MOTION: SensorStatus.AVAILABLE,
        }
        self._handles: List[Any] = []
        self._started_at: Optional[float] = None
        self._last_activity: Optional[float] = None
        self.last_summary: Optional[SessionSummary] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> "WalkSession":
        self.start_session()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop_session()

    @property
    def is_active(self) -> bool:
        return self.detector.is_active

    def attach(self, handle: Any) -> None:
        """Register a handle with a release() method, released on stop."""
        with self._lock:
            self._handles.append(handle)

    def start_session(self) -> None:
        with self._lock:
            if self.is_active:
                logger.debug("[SESSION] Already active")
                return

            now = self._clock()
            self._started_at = now
            self._last_activity = now
            self.detector.start_counting()
            self.tracker.clear()
            self.tracker.tracking = True
            logger.info("[SESSION] Walk started")

    def stop_session(self) -> SessionSummary:
        """
        End the walk.

        Returns:
            The finalized summary (empty if the session was idle)
        """
        with self._lock:
            self._release_handles()

            was_active = self.is_active
            summary = self._summarize()
            summary.is_active = False
            summary.finished_at = datetime.now(timezone.utc)

            self.detector.stop_counting()
            self.tracker.tracking = False

            if was_active and self.dinosaur is not None:
                self.dinosaur.apply_steps(summary.steps)

            self.detector.reset_steps()
            self.tracker.clear()
            self._started_at = None
            self._last_activity = None
            self.sensor_status = {kind: SensorStatus.AVAILABLE for kind in SensorKind}

            self.last_summary = summary

        if was_active:
            logger.info(
                f"[SESSION] Walk finished: {summary.steps} steps, "
                f"{format_distance(summary.distance_m)} in "
                f"{summary.elapsed_seconds:.0f}s"
            )
        return summary

    def reset_session(self) -> None:
        """Zero steps and distance; the active flag is unchanged."""
        with self._lock:
            self.detector.reset_steps()
            self.tracker.clear()
            if self.is_active:
                self._started_at = self._clock()
                self._last_activity = self._started_at
            logger.info("[SESSION] Walk reset")

    def check_inactivity(self, now: Optional[float] = None) -> bool:
        """
        Stop the session if no sample arrived within the inactivity limit.

        Returns:
            True if the session was stopped
        """
        with self._lock:
            if not self.is_active or self._last_activity is None:
                return False
            now = self._clock() if now is None else now
            idle = now - self._last_activity
            if idle <= self.settings.inactivity_timeout_s:
                return False

        logger.info(f"[SESSION] No activity for {idle:.0f}s, stopping")
        self.stop_session()
        return True

    def _release_handles(self) -> None:
        handles, self._handles = self._handles, []
        for handle in reversed(handles):
            try:
                handle.release()
            except Exception as e:
                logger.error(f"[SESSION] Failed to release {handle!r}: {e}")

    # ------------------------------------------------------------------
    # Sensor input
    # ------------------------------------------------------------------

    def observe_position(self, position: Position, accuracy: Optional[float]) -> bool:
        """Offer a GPS fix. Returns True if it entered the history."""
        with self._lock:
            # Late fixes after stop must not leak into the next walk
            if not self.is_active or self._is_disabled(SensorKind.GEOLOCATION):
                return False

            accepted = self.tracker.observe(position, accuracy)
            if accepted:
                self.sensor_status[SensorKind.GEOLOCATION] = SensorStatus.AVAILABLE
                self._last_activity = self._clock()
            return accepted

    def observe_acceleration(self, sample: AccelerationSample) -> bool:
        """Feed an accelerometer sample. Returns True if a step was counted."""
        with self._lock:
            if self._is_disabled(SensorKind.MOTION):
                return False

            if self.is_active:
                self._last_activity = self._clock()
            return self.detector.process_sample(sample)

    def report_sensor_error(self, sensor: SensorKind, status: SensorStatus) -> None:
        """
        Record a sensor error condition.

        Unavailable and permission-denied feeds are switched off; timeouts
        and missing fixes only mean there was no sample this tick.
        """
        with self._lock:
            previous = self.sensor_status.get(sensor)
            self.sensor_status[sensor] = status

        if status == previous:
            return

        if status in DISABLING_STATUSES:
            logger.warning(f"[SENSOR] {sensor.value} {status.value}, feed disabled")
        else:
            logger.info(f"[SENSOR] {sensor.value} {status.value}")

    def reauthorize(self, sensor: SensorKind) -> None:
        """Re-enable a feed after the user granted permission again."""
        with self._lock:
            if self.sensor_status.get(sensor) == SensorStatus.PERMISSION_DENIED:
                self.sensor_status[sensor] = SensorStatus.AVAILABLE
                logger.info(f"[SENSOR] {sensor.value} reauthorized")

    def set_sensitivity(self, sensitivity: float) -> None:
        with self._lock:
            self.detector.set_sensitivity(sensitivity)

    def add_steps(self, count: int) -> None:
        with self._lock:
            self.detector.add_steps(count)

    def _is_disabled(self, sensor: SensorKind) -> bool:
        return self.sensor_status.get(sensor) in DISABLING_STATUSES

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def steps(self) -> int:
        return self.detector.steps

    @property
    def distance(self) -> float:
        return self.tracker.session_distance

    @property
    def speed(self) -> float:
        with self._lock:
            return self.tracker.current_speed()

    @property
    def sensitivity(self) -> float:
        return self.detector.sensitivity

    @property
    def elapsed_seconds(self) -> float:
        with self._lock:
            if self._started_at is None:
                return 0.0
            return max(0.0, self._clock() - self._started_at)

    def filtered_track(self) -> List[Position]:
        with self._lock:
            return self.tracker.filtered_track()

    def summary(self) -> SessionSummary:
        """Current aggregate, recomputed from the detector and tracker."""
        with self._lock:
            return self._summarize()

    def _summarize(self) -> SessionSummary:
        return SessionSummary(
            steps=self.detector.steps,
            distance_m=self.tracker.session_distance,
            speed_mps=self.tracker.current_speed(),
            elapsed_seconds=(
                max(0.0, self._clock() - self._started_at)
                if self._started_at is not None
                else 0.0
            ),
            is_active=self.is_active,
            sensor_status={k.value: v.value for k, v in self.sensor_status.items()},
        )
