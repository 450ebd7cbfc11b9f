"""
Position Tracking Module.

Admits accurate GPS fixes into a bounded history and keeps the walking
session's cumulative distance and instantaneous speed up to date.
"""

import logging
from collections import deque
from typing import Iterator, List, Optional, Tuple

from .geo_utils import (
    ACCURACY_LIMIT_METERS,
    MAX_JUMP_METERS,
    MAX_WALKING_SPEED,
    MIN_WALKING_SPEED,
    Position,
    calculate_speed,
    calculate_total_distance,
    filter_positions,
    is_accurate_position,
)

logger = logging.getLogger(__name__)


class PositionHistory:
    """Time-ordered FIFO buffer of the most recent positions."""

    def __init__(self, limit: int = 100):
        self.limit = limit
        self._positions: deque = deque(maxlen=limit)

    def append(self, position: Position) -> None:
        # deque(maxlen) evicts the oldest entry on overflow
        self._positions.append(position)

    def clear(self) -> None:
        self._positions.clear()

    def snapshot(self) -> List[Position]:
        return list(self._positions)

    def last(self, count: int) -> List[Position]:
        return list(self._positions)[-count:]

    def __len__(self) -> int:
        return len(self._positions)

    def __iter__(self) -> Iterator[Position]:
        return iter(list(self._positions))

    def __getitem__(self, index: int) -> Position:
        return self._positions[index]


class PositionTracker:
    """
    Accepts raw geolocation updates and maintains session distance.

    Inaccurate fixes are dropped silently: GPS noise is expected and must
    not interrupt the stream. Distance is recomputed from the full history
    snapshot on each accepted fix while tracking is enabled; the history
    is bounded, so a from-scratch recompute stays cheap.

    Configuration:
        history_limit: Maximum number of fixes kept
        accuracy_limit: Largest accepted accuracy radius in meters
        max_jump: Hop length treated as a GPS glitch
        walking_speed: (min, max) m/s envelope for the filtered track
    """

    def __init__(
        self,
        history_limit: int = 100,
        accuracy_limit: float = ACCURACY_LIMIT_METERS,
        max_jump: float = MAX_JUMP_METERS,
        walking_speed: Tuple[float, float] = (MIN_WALKING_SPEED, MAX_WALKING_SPEED),
    ):
        self.history = PositionHistory(history_limit)
        self.accuracy_limit = accuracy_limit
        self.max_jump = max_jump
        self.walking_speed = walking_speed
        self.tracking = False
        self.session_distance = 0.0
        self.rejected_count = 0

    def observe(self, position: Position, accuracy: Optional[float]) -> bool:
        """
        Offer a new fix to the history.

        Args:
            position: The reported position
            accuracy: Accuracy radius in meters (None when unknown)

        Returns:
            True if the fix was accepted
        """
        if not is_accurate_position(accuracy, self.accuracy_limit):
            self.rejected_count += 1
            logger.debug(f"[GPS] Dropped inaccurate fix (accuracy={accuracy})")
            return False

        self.history.append(position)

        if self.tracking:
            self.update_session_distance()

        return True

    def update_session_distance(self) -> float:
        """Recompute the session distance from the current history."""
        self.session_distance = calculate_total_distance(
            self.history.snapshot(), self.max_jump
        )
        logger.debug(
            f"[GPS] Session distance {self.session_distance:.1f}m "
            f"over {len(self.history)} fixes"
        )
        return self.session_distance

    def current_speed(self) -> float:
        """Speed between the two most recent fixes, 0 with fewer than two."""
        if len(self.history) < 2:
            return 0.0
        previous, latest = self.history.last(2)
        return calculate_speed(previous, latest)

    def latest(self) -> Optional[Position]:
        if not len(self.history):
            return None
        return self.history[-1]

    def filtered_track(self) -> List[Position]:
        """History with glitch jumps and non-walking hops removed."""
        return filter_positions(self.history.snapshot(), self.max_jump, *self.walking_speed)

    def clear(self) -> None:
        """Drop all fixes and zero the session distance."""
        self.history.clear()
        self.session_distance = 0.0
        self.rejected_count = 0
