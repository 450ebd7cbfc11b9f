"""
Unit tests for geo-math primitives.

Usage:
    pytest tests/test_geo_utils.py -v
"""
import math
import pytest

from walk_tracker.geo_utils import (
    Position,
    calculate_distance,
    calculate_speed,
    calculate_total_distance,
    filter_positions,
    format_distance,
    format_speed,
    is_accurate_position,
    is_moving,
    is_walking_speed,
)

METERS_PER_DEGREE_LAT = 6371000 * math.pi / 180


def north_of(origin: Position, meters: float, timestamp=None) -> Position:
    """Position `meters` due north of origin."""
    return Position(
        origin.latitude + meters / METERS_PER_DEGREE_LAT,
        origin.longitude,
        timestamp,
    )


ORIGIN = Position(35.6812, 139.7671, 1_000_000)


class TestCalculateDistance:
    """Haversine distance."""

    def test_identical_points_are_zero(self):
        assert calculate_distance(ORIGIN, ORIGIN) == 0

    def test_symmetric(self):
        other = Position(35.6896, 139.7006)
        assert calculate_distance(ORIGIN, other) == pytest.approx(
            calculate_distance(other, ORIGIN)
        )

    def test_meridian_distance(self):
        """Along a meridian the distance is R * delta_latitude."""
        assert calculate_distance(ORIGIN, north_of(ORIGIN, 100)) == pytest.approx(100, rel=1e-6)

    def test_one_degree_longitude_at_equator(self):
        a = Position(0.0, 0.0)
        b = Position(0.0, 1.0)
        assert calculate_distance(a, b) == pytest.approx(111194.93, rel=1e-5)

    def test_antimeridian(self):
        a = Position(0.0, 179.9995)
        b = Position(0.0, -179.9995)
        assert calculate_distance(a, b) == pytest.approx(111.19, rel=1e-3)


class TestCalculateSpeed:
    """Speed between fixes."""

    def test_speed_from_timestamps(self):
        later = north_of(ORIGIN, 14, timestamp=ORIGIN.timestamp + 10_000)
        assert calculate_speed(ORIGIN, later) == pytest.approx(1.4, rel=1e-6)

    def test_missing_timestamp_is_zero(self):
        later = north_of(ORIGIN, 14)
        assert calculate_speed(ORIGIN, later) == 0
        assert calculate_speed(later, ORIGIN) == 0

    def test_zero_elapsed_is_zero(self):
        same_time = north_of(ORIGIN, 14, timestamp=ORIGIN.timestamp)
        assert calculate_speed(ORIGIN, same_time) == 0

    def test_negative_elapsed_is_zero(self):
        earlier = north_of(ORIGIN, 14, timestamp=ORIGIN.timestamp - 5000)
        assert calculate_speed(ORIGIN, earlier) == 0


class TestTotalDistance:
    """Track length with glitch rejection."""

    def test_empty_and_single(self):
        assert calculate_total_distance([]) == 0
        assert calculate_total_distance([ORIGIN]) == 0

    def test_sums_hops(self):
        track = [north_of(ORIGIN, 7 * i) for i in range(5)]
        assert calculate_total_distance(track) == pytest.approx(28, rel=1e-6)

    def test_excludes_single_glitch_jump(self):
        """A 5m hop followed by a 2000m jump counts only the 5m."""
        a = ORIGIN
        b = north_of(a, 5)
        c = north_of(b, 2000)
        assert calculate_total_distance([a, b, c]) == pytest.approx(calculate_distance(a, b))

    def test_jump_of_exactly_limit_is_excluded(self):
        a = Position(0.0, 0.0)
        b = Position(1000 / METERS_PER_DEGREE_LAT, 0.0)
        hop = calculate_distance(a, b)
        assert calculate_total_distance([a, b], max_jump=hop) == 0

    def test_walking_resumes_after_glitch(self):
        a = ORIGIN
        b = north_of(a, 10)
        glitch = north_of(b, 5000)
        d = north_of(glitch, 10)
        assert calculate_total_distance([a, b, glitch, d]) == pytest.approx(20, rel=1e-6)


class TestAdmissionChecks:
    """Accuracy and walking-speed thresholds."""

    def test_accuracy_threshold(self):
        assert is_accurate_position(50) is True
        assert is_accurate_position(51) is False
        assert is_accurate_position(None) is False
        assert is_accurate_position(0) is True

    def test_walking_speed_envelope(self):
        assert is_walking_speed(0.5) is True
        assert is_walking_speed(2.5) is True
        assert is_walking_speed(0.49) is False
        assert is_walking_speed(2.51) is False

    def test_is_moving(self):
        assert is_moving(ORIGIN, north_of(ORIGIN, 6)) is True
        assert is_moving(ORIGIN, north_of(ORIGIN, 4)) is False


class TestFilterPositions:
    """Denoising a track."""

    def test_short_tracks_unchanged(self):
        assert filter_positions([]) == []
        assert filter_positions([ORIGIN]) == [ORIGIN]

    def test_drops_running_speed_hop(self):
        walk = north_of(ORIGIN, 7, ORIGIN.timestamp + 5000)          # 1.4 m/s
        sprint = north_of(walk, 30, walk.timestamp + 5000)            # 6 m/s
        resume = north_of(walk, 7, walk.timestamp + 10_000)           # 0.7 m/s from walk
        assert filter_positions([ORIGIN, walk, sprint, resume]) == [ORIGIN, walk, resume]

    def test_keeps_fixes_without_timestamps(self):
        a = Position(ORIGIN.latitude, ORIGIN.longitude)
        b = north_of(a, 50)
        assert filter_positions([a, b]) == [a, b]

    def test_drops_glitch_jump(self):
        a = Position(ORIGIN.latitude, ORIGIN.longitude)
        glitch = north_of(a, 1500)
        assert filter_positions([a, glitch]) == [a]


class TestFormatting:
    """Unit conversions for display."""

    def test_format_distance(self):
        assert format_distance(999) == "999m"
        assert format_distance(1500) == "1.5km"
        assert format_distance(0) == "0m"
        assert format_distance(12.5) == "13m"

    def test_format_speed(self):
        assert format_speed(1) == "3.6km/h"
        assert format_speed(0) == "0.0km/h"
