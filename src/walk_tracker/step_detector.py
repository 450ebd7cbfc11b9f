"""
Step Detection Module.

Counts steps from a stream of 3-axis accelerometer samples (gravity
included) using peak detection against a moving-average baseline.

A step is a magnitude peak rising more than `sensitivity` above the mean
magnitude of the last `window_size` samples. A latch keeps one physical
step from being counted twice: it is set on each counted step and only
re-armed once the magnitude falls below `average - sensitivity / 2`, or
after `max_step_interval_ms` without a peak. Peaks closer than
`min_step_interval_ms` to the previous one are ignored.
"""

import logging
import math
import statistics
import time
from collections import deque
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_SENSITIVITY = 10.0
WINDOW_SIZE = 10
MIN_STEP_INTERVAL_MS = 300.0
MAX_STEP_INTERVAL_MS = 2000.0


@dataclass(frozen=True)
class AccelerationSample:
    """Accelerometer reading in m/s^2 with a millisecond timestamp."""

    x: float
    y: float
    z: float
    timestamp: float

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x ** 2 + self.y ** 2 + self.z ** 2)


@dataclass
class StepCounterState:
    """Mutable step counting state for one walking session."""

    steps: int = 0
    is_active: bool = False
    sensitivity: float = DEFAULT_SENSITIVITY
    last_step_time: Optional[float] = None
    peak_latched: bool = False
    last_peak_time: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "steps": self.steps,
            "is_active": self.is_active,
            "sensitivity": self.sensitivity,
            "last_step_time": self.last_step_time,
        }


class StepDetector:
    """
    Peak-detecting pedometer over a sliding acceleration window.

    The detector assumes well-formed numeric samples; decoding and
    filtering malformed readings is the caller's job. It never raises.

    Configuration:
        sensitivity: Threshold above the moving average for a peak
        window_size: Samples in the moving-average window (warm-up length)
        min_step_interval_ms: Debounce between counted steps
        max_step_interval_ms: Gap after which the peak latch is released
    """

    def __init__(
        self,
        sensitivity: float = DEFAULT_SENSITIVITY,
        window_size: int = WINDOW_SIZE,
        min_step_interval_ms: float = MIN_STEP_INTERVAL_MS,
        max_step_interval_ms: float = MAX_STEP_INTERVAL_MS,
    ):
        self.window_size = window_size
        self.min_step_interval_ms = min_step_interval_ms
        self.max_step_interval_ms = max_step_interval_ms

        self.state = StepCounterState(sensitivity=sensitivity)
        self._window: deque = deque(maxlen=window_size)

        logger.info(
            f"[STEP] Initialized detector: sensitivity={sensitivity}, "
            f"window={window_size}, interval={min_step_interval_ms}-"
            f"{max_step_interval_ms}ms"
        )

    @property
    def steps(self) -> int:
        return self.state.steps

    @property
    def is_active(self) -> bool:
        return self.state.is_active

    @property
    def sensitivity(self) -> float:
        return self.state.sensitivity

    @property
    def window_length(self) -> int:
        return len(self._window)

    def start_counting(self) -> None:
        """Begin counting with a fresh window; the step total is kept."""
        self._clear_tracking()
        self.state.is_active = True
        logger.info(f"[STEP] Counting started at {self.state.steps} steps")

    def stop_counting(self) -> None:
        self.state.is_active = False
        logger.info(f"[STEP] Counting stopped at {self.state.steps} steps")

    def reset_steps(self) -> None:
        """Zero the step count and clear all peak tracking state."""
        self.state.steps = 0
        self.state.last_step_time = None
        self._clear_tracking()
        logger.info("[STEP] Steps reset")

    def set_sensitivity(self, sensitivity: float) -> None:
        self.state.sensitivity = sensitivity
        logger.info(f"[STEP] Sensitivity set to {sensitivity}")

    def add_steps(self, count: int) -> None:
        """Manually credit steps (debug and manual entry)."""
        if count <= 0:
            return
        self.state.steps += count
        self.state.last_step_time = time.time() * 1000

    def process_sample(self, sample: AccelerationSample) -> bool:
        """
        Feed one accelerometer sample.

        Args:
            sample: The accelerometer reading

        Returns:
            True if this sample completed a step
        """
        if not self.state.is_active:
            return False

        self._window.append(sample)

        # Warm-up: no baseline until the window is full
        if len(self._window) < self.window_size:
            return False

        magnitude = sample.magnitude
        average = statistics.fmean(s.magnitude for s in self._window)

        if self._detect_peak(magnitude, average, sample.timestamp):
            self.state.steps += 1
            self.state.last_step_time = sample.timestamp
            logger.debug(
                f"[STEP] Step {self.state.steps}: magnitude={magnitude:.2f}, "
                f"average={average:.2f}"
            )
            return True

        return False

    def _detect_peak(self, magnitude: float, average: float, timestamp: float) -> bool:
        threshold = self.state.sensitivity
        since_last_peak = timestamp - self.state.last_peak_time

        if since_last_peak > self.max_step_interval_ms:
            self.state.peak_latched = False

        if (
            magnitude > average + threshold
            and since_last_peak > self.min_step_interval_ms
            and not self.state.peak_latched
        ):
            self.state.peak_latched = True
            self.state.last_peak_time = timestamp
            return True

        # Hysteresis: re-arm only once the signal has clearly dropped
        if magnitude < average - threshold / 2:
            self.state.peak_latched = False

        return False

    def _clear_tracking(self) -> None:
        self._window.clear()
        self.state.last_peak_time = 0.0
        self.state.peak_latched = False
