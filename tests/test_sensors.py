"""
Unit tests for sensor payload decoding.

Usage:
    pytest tests/test_sensors.py -v
"""
import json

from walk_tracker.sensors import (
    MotionEvent,
    PositionEvent,
    SensorErrorEvent,
    SensorKind,
    SensorStatus,
    parse_sensor_event,
)


class TestParseSensorEvent:
    """Decoding of raw payloads."""

    def test_position_from_dict(self):
        event = parse_sensor_event(
            {"type": "position", "latitude": 35.68, "longitude": 139.76, "accuracy": 12.0, "timestamp": 1000}
        )
        assert isinstance(event, PositionEvent)
        assert event.accuracy == 12.0
        position = event.to_position()
        assert (position.latitude, position.longitude, position.timestamp) == (35.68, 139.76, 1000)

    def test_position_without_accuracy(self):
        event = parse_sensor_event({"type": "position", "latitude": 1, "longitude": 2})
        assert event.accuracy is None
        assert event.timestamp is None

    def test_motion_from_json_string(self):
        payload = json.dumps({"type": "motion", "x": 0.1, "y": -0.2, "z": 9.8, "timestamp": 500})
        event = parse_sensor_event(payload)
        assert isinstance(event, MotionEvent)
        sample = event.to_sample()
        assert sample.z == 9.8
        assert sample.timestamp == 500

    def test_motion_from_bytes(self):
        payload = json.dumps({"type": "motion", "x": 0, "y": 0, "z": 9.81, "timestamp": 1}).encode()
        assert isinstance(parse_sensor_event(payload), MotionEvent)

    def test_error_event(self):
        event = parse_sensor_event(
            {"type": "error", "sensor": "geolocation", "status": "permission_denied"}
        )
        assert isinstance(event, SensorErrorEvent)
        assert event.sensor is SensorKind.GEOLOCATION
        assert event.status is SensorStatus.PERMISSION_DENIED
        assert event.message == ""


class TestMalformedPayloads:
    """Bad samples are dropped, never raised."""

    def test_undecodable_json(self):
        assert parse_sensor_event("{not json") is None

    def test_non_object_payload(self):
        assert parse_sensor_event("[1, 2, 3]") is None
        assert parse_sensor_event(42) is None

    def test_unknown_type(self):
        assert parse_sensor_event({"type": "barometer", "value": 1013}) is None
        assert parse_sensor_event({"latitude": 1, "longitude": 2}) is None

    def test_missing_axis(self):
        assert parse_sensor_event({"type": "motion", "x": 0, "y": 0, "timestamp": 1}) is None

    def test_non_numeric_coordinate(self):
        assert parse_sensor_event({"type": "position", "latitude": "north", "longitude": 2}) is None

    def test_unknown_status(self):
        assert parse_sensor_event({"type": "error", "sensor": "motion", "status": "on_fire"}) is None
