#!/usr/bin/env python3
"""
Walking Sensor Simulator for DinoWalk.

Publishes a simulated phone's sensor feeds (GPS fixes and accelerometer
samples) to the Solace broker, so the walk tracker can be exercised without
walking around with a phone.
Uses the Solace PubSub+ Python SDK for direct messaging.

Usage:
    python scripts/walk_simulator.py --scenario walk --steps 200
    python scripts/walk_simulator.py --scenario glitch
    python scripts/walk_simulator.py --scenario denied --sensor motion
    python scripts/walk_simulator.py --once --type position --lat 35.68 --lon 139.76
"""

import os
import json
import math
import time
import random
import argparse
from typing import List, Optional
from dotenv import load_dotenv

from solace.messaging.messaging_service import MessagingService
from solace.messaging.resources.topic import Topic
from solace.messaging.publisher.direct_message_publisher import PublishFailureListener
from solace.messaging.config.transport_security_strategy import TLS


# Load environment variables
load_dotenv()

EARTH_RADIUS_M = 6371000.0
METERS_PER_DEGREE_LAT = EARTH_RADIUS_M * math.pi / 180

# Simulated sensor characteristics
WALK_SPECS = {
    "motion": {
        "sample_rate_hz": 50,
        "gravity": 9.81,
        "step_peak": 15.0,        # Added to gravity at heel strike
        "step_trough": 2.0,       # Magnitude while the foot lifts
        "cadence_range": (90, 120),  # Steps per minute
        "lead_in_samples": 10,    # Fills the detector window before walking
    },
    "position": {
        "interval_s": 5.0,
        "speed_range": (1.1, 1.6),  # m/s
        "accuracy_range": (5.0, 20.0),
        "poor_accuracy": 80.0,
        "glitch_jump_m": 2000.0,
    },
    "error": {
        "sensors": ["geolocation", "motion"],
        "statuses": ["unavailable", "permission_denied", "timeout", "position_unavailable"],
    },
}

DEFAULT_START = (35.6812, 139.7671)  # Tokyo Station


class EventPublishFailureListener(PublishFailureListener):
    """Handler for publish failures."""

    def on_failed_publish(self, failed_publish_event):
        print(f"[ERROR] Failed to publish: {failed_publish_event}")


def create_messaging_service():
    """Create and connect to Solace broker messaging service."""
    broker_url = os.getenv("WALK_BROKER_URL", "ws://localhost:8008")
    vpn_name = os.getenv("WALK_BROKER_VPN", "default")
    username = os.getenv("WALK_BROKER_USERNAME", "default")
    password = os.getenv("WALK_BROKER_PASSWORD", "default")

    print(f"[INFO] Connecting to Solace broker: {broker_url}")
    print(f"[INFO] VPN: {vpn_name}, Username: {username}")

    broker_props = {
        "solace.messaging.transport.host": broker_url,
        "solace.messaging.service.vpn-name": vpn_name,
        "solace.messaging.authentication.scheme.basic.username": username,
        "solace.messaging.authentication.scheme.basic.password": password,
    }

    builder = MessagingService.builder().from_properties(broker_props)

    # For Solace Cloud (wss://), configure TLS
    if broker_url.startswith("wss://"):
        tls_strategy = TLS.create().without_certificate_validation()
        builder = builder.with_transport_security_strategy(tls_strategy)
        print("[INFO] TLS enabled (development mode)")

    messaging_service = builder.build()
    messaging_service.connect()
    print("[INFO] Connected to Solace broker successfully!")

    return messaging_service


def create_position_event(
    latitude: float,
    longitude: float,
    accuracy: Optional[float] = None,
    timestamp: Optional[float] = None,
) -> dict:
    """Create a geolocation event."""
    if accuracy is None:
        accuracy = round(random.uniform(*WALK_SPECS["position"]["accuracy_range"]), 1)
    if timestamp is None:
        timestamp = time.time() * 1000

    return {
        "type": "position",
        "latitude": latitude,
        "longitude": longitude,
        "accuracy": accuracy,
        "timestamp": timestamp,
    }


def create_motion_event(x: float, y: float, z: float, timestamp: float) -> dict:
    """Create an accelerometer event."""
    return {"type": "motion", "x": x, "y": y, "z": z, "timestamp": timestamp}


def create_error_event(sensor: str, status: str, message: str = "") -> dict:
    """Create a sensor error event."""
    if status not in WALK_SPECS["error"]["statuses"]:
        raise ValueError(f"Unknown sensor status: {status}")
    return {
        "type": "error",
        "sensor": sensor,
        "status": status,
        "message": message or f"{sensor} {status.replace('_', ' ')}",
    }


def generate_acceleration_trace(
    steps: int,
    start_ms: float = 1_000_000.0,
    cadence_spm: int = 100,
    noise: float = 0.0,
) -> List[dict]:
    """
    Generate accelerometer events for a walk of `steps` steps.

    Each step is a heel-strike peak followed by a trough, on a flat
    gravity baseline along z. A lead-in of resting samples comes first.

    Args:
        steps: Number of steps to simulate
        start_ms: Timestamp of the first sample
        cadence_spm: Steps per minute
        noise: Standard deviation of gaussian noise added to z (0 = exact)
    """
    specs = WALK_SPECS["motion"]
    interval_ms = 1000 / specs["sample_rate_hz"]
    samples_per_step = max(3, round(60000 / cadence_spm / interval_ms))
    gravity = specs["gravity"]

    magnitudes = [gravity] * specs["lead_in_samples"]
    for _ in range(steps):
        pattern = [gravity + specs["step_peak"], specs["step_trough"]]
        pattern += [gravity] * (samples_per_step - len(pattern))
        magnitudes.extend(pattern)

    events = []
    for i, z in enumerate(magnitudes):
        if noise:
            z += random.gauss(0, noise)
        events.append(create_motion_event(0.0, 0.0, z, start_ms + i * interval_ms))
    return events


def generate_gps_track(
    count: int,
    start: tuple = DEFAULT_START,
    speed_mps: float = 1.4,
    interval_s: Optional[float] = None,
    start_ms: float = 1_000_000.0,
    accuracy: Optional[float] = 10.0,
) -> List[dict]:
    """
    Generate geolocation events walking due north at a constant speed.

    Args:
        count: Number of fixes
        start: (latitude, longitude) of the first fix
        speed_mps: Walking speed
        interval_s: Seconds between fixes
        start_ms: Timestamp of the first fix
        accuracy: Reported accuracy (None picks a random plausible value)
    """
    if interval_s is None:
        interval_s = WALK_SPECS["position"]["interval_s"]

    hop_degrees = speed_mps * interval_s / METERS_PER_DEGREE_LAT
    latitude, longitude = start

    return [
        create_position_event(
            latitude + i * hop_degrees,
            longitude,
            accuracy=accuracy,
            timestamp=start_ms + i * interval_s * 1000,
        )
        for i in range(count)
    ]


def insert_glitch(track: List[dict], index: int, jump_m: Optional[float] = None) -> List[dict]:
    """Return a copy of the track with one fix thrown `jump_m` meters east."""
    if jump_m is None:
        jump_m = WALK_SPECS["position"]["glitch_jump_m"]

    glitched = [dict(event) for event in track]
    fix = glitched[index]
    meters_per_degree_lon = METERS_PER_DEGREE_LAT * math.cos(math.radians(fix["latitude"]))
    fix["longitude"] += jump_m / meters_per_degree_lon
    return glitched


def publish_event(publisher, event: dict, user_id: str, topic_prefix: str = "dinowalk"):
    """Publish an event to the user's sensor topic."""
    topic_string = f"{topic_prefix}/sensors/{user_id}/{event['type']}"
    topic = Topic.of(topic_string)

    publisher.publish(destination=topic, message=json.dumps(event))

    return topic_string


def run_walk_scenario(publisher, user_id: str, steps: int, realtime: bool = True):
    """Walk `steps` steps, interleaving GPS fixes with the accelerometer feed."""
    cadence = random.randint(*WALK_SPECS["motion"]["cadence_range"])
    speed = round(random.uniform(*WALK_SPECS["position"]["speed_range"]), 2)
    start_ms = time.time() * 1000

    motion = generate_acceleration_trace(steps, start_ms, cadence, noise=0.3)
    duration_s = (motion[-1]["timestamp"] - start_ms) / 1000
    fixes = int(duration_s / WALK_SPECS["position"]["interval_s"]) + 1
    track = generate_gps_track(fixes, speed_mps=speed, start_ms=start_ms, accuracy=None)

    print(f"\n[SCENARIO] Walking {steps} steps at {cadence} spm, {speed} m/s")

    events = sorted(motion + track, key=lambda e: e["timestamp"])
    previous_ms = start_ms
    for event in events:
        if realtime:
            time.sleep(max(0.0, (event["timestamp"] - previous_ms) / 1000))
        previous_ms = event["timestamp"]
        publish_event(publisher, event, user_id)

    print(f"[SCENARIO] Published {len(motion)} motion and {len(track)} position events")


def run_glitch_scenario(publisher, user_id: str, interval: float = 1.0):
    """A short walk with one 2 km GPS jump the tracker must ignore."""
    print("\n[SCENARIO] GPS track with one glitch fix")
    track = insert_glitch(generate_gps_track(10, start_ms=time.time() * 1000), 5)
    for event in track:
        topic = publish_event(publisher, event, user_id)
        print(f"[PUBLISH] {topic}: {event['latitude']:.6f}, {event['longitude']:.6f}")
        time.sleep(interval)


def run_denied_scenario(publisher, user_id: str, sensor: str):
    """Report a permission denial for one sensor."""
    event = create_error_event(sensor, "permission_denied")
    topic = publish_event(publisher, event, user_id)
    print(f"[PUBLISH] {topic}: {event['message']}")


def main():
    parser = argparse.ArgumentParser(description="Publish simulated walking sensor data")
    parser.add_argument("--scenario", choices=["walk", "glitch", "denied"], default="walk")
    parser.add_argument("--user", default=os.getenv("WALK_API_USER_ID", "demo-user"))
    parser.add_argument("--steps", type=int, default=100)
    parser.add_argument("--sensor", choices=WALK_SPECS["error"]["sensors"], default="motion")
    parser.add_argument("--fast", action="store_true", help="Do not pace events in real time")
    parser.add_argument("--once", action="store_true", help="Publish a single event")
    parser.add_argument("--type", choices=["position", "motion"], default="position")
    parser.add_argument("--lat", type=float, default=DEFAULT_START[0])
    parser.add_argument("--lon", type=float, default=DEFAULT_START[1])
    parser.add_argument("--accuracy", type=float, default=10.0)
    args = parser.parse_args()

    messaging_service = create_messaging_service()
    publisher = messaging_service.create_direct_message_publisher_builder().build()
    publisher.set_publish_failure_listener(EventPublishFailureListener())
    publisher.start()

    try:
        if args.once:
            if args.type == "position":
                event = create_position_event(args.lat, args.lon, args.accuracy)
            else:
                event = create_motion_event(0.0, 0.0, WALK_SPECS["motion"]["gravity"], time.time() * 1000)
            topic = publish_event(publisher, event, args.user)
            print(f"[PUBLISH] {topic}: {json.dumps(event)}")
        elif args.scenario == "walk":
            run_walk_scenario(publisher, args.user, args.steps, realtime=not args.fast)
        elif args.scenario == "glitch":
            run_glitch_scenario(publisher, args.user)
        else:
            run_denied_scenario(publisher, args.user, args.sensor)
    except KeyboardInterrupt:
        print("\n[INFO] Stopped")
    finally:
        publisher.terminate()
        messaging_service.disconnect()
        print("[INFO] Disconnected from Solace broker")


if __name__ == "__main__":
    main()
