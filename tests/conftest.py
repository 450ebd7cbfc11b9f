"""
Pytest fixtures for walk tracker tests.
"""
import sys
import pytest
from pathlib import Path
from dotenv import load_dotenv

# Ensure src/ and scripts/ are on sys.path so tests can import walk_tracker and the simulator.
ROOT = Path(__file__).resolve().parent.parent
for path in (ROOT, ROOT / "src", ROOT / "scripts"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

# Load environment variables
load_dotenv()

from walk_tracker.config import TrackerSettings  # noqa: E402
from walk_tracker.step_detector import AccelerationSample  # noqa: E402

GRAVITY = 9.81
SAMPLE_INTERVAL_MS = 20


class FakeClock:
    """Manually advanced clock (seconds) for session timing."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def flat_samples(count: int, start_ms: float, magnitude: float = GRAVITY) -> list:
    """Resting samples with constant magnitude along z."""
    return [
        AccelerationSample(0.0, 0.0, magnitude, start_ms + i * SAMPLE_INTERVAL_MS)
        for i in range(count)
    ]


@pytest.fixture
def tracker_settings():
    """Default tracker settings, independent of the environment."""
    return TrackerSettings(
        _env_file=None,
        sensitivity=10.0,
        window_size=10,
        min_step_interval_ms=300.0,
        max_step_interval_ms=2000.0,
        history_limit=100,
        accuracy_limit_m=50.0,
        max_jump_m=1000.0,
        geolocation_timeout_s=10.0,
        inactivity_timeout_s=1800.0,
        user_store_url="http://localhost:3000",
        broker_url="ws://localhost:8008",
        topic_prefix="dinowalk",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def walk_session(tracker_settings, clock):
    """A fresh, idle walk session on a fake clock."""
    from walk_tracker.session import WalkSession

    return WalkSession(settings=tracker_settings, clock=clock)
