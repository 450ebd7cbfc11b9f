"""
Walk Listener Lifecycle Module.

Manages the Solace subscription that carries a phone's sensor feeds
(geolocation fixes, accelerometer samples, sensor errors) into a walk
session.

The phone publishes to:
    {prefix}/sensors/{user_id}/position
    {prefix}/sensors/{user_id}/motion
    {prefix}/sensors/{user_id}/error

Solace delivers messages on its own thread; each decoded event is handed to
the SensorEventDispatcher thread-safely so the session state is still only
mutated by the dispatcher's consumer.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from solace.messaging.config.transport_security_strategy import TLS
from solace.messaging.messaging_service import MessagingService
from solace.messaging.receiver.message_receiver import InboundMessage, MessageHandler
from solace.messaging.resources.topic_subscription import TopicSubscription

from .config import TrackerSettings, get_tracker_settings
from .dispatcher import SensorEventDispatcher
from .sensors import parse_sensor_event
from .session import WalkSession

logger = logging.getLogger(__name__)


class WalkListenerState:
    """Holds the state of the sensor feed listener."""

    def __init__(self):
        self.messaging_service: Optional[MessagingService] = None
        self.receiver = None
        self.dispatcher: Optional[SensorEventDispatcher] = None
        self.running = False
        self.event_count = 0
        self.last_event_time: Optional[datetime] = None
        # Track events by kind
        self.events_by_kind: Dict[str, int] = {
            "position": 0,
            "motion": 0,
            "error": 0,
            "invalid": 0,
        }


# Global state for the walk listener
_state = WalkListenerState()


class SensorFeedHandler(MessageHandler):
    """Decodes incoming sensor messages and forwards them to the dispatcher."""

    def __init__(self, dispatcher: SensorEventDispatcher):
        self.dispatcher = dispatcher

    def on_message(self, message: InboundMessage):
        """Process incoming sensor event."""
        try:
            payload = message.get_payload_as_string()
            event = parse_sensor_event(payload)

            _state.event_count += 1
            _state.last_event_time = datetime.now(timezone.utc)

            if event is None:
                _state.events_by_kind["invalid"] += 1
                return

            _state.events_by_kind[event.type] += 1
            logger.debug(f"[SENSOR EVENT] {message.get_destination_name()}: {event.type}")

            self.dispatcher.submit_threadsafe(event)

        except Exception as e:
            logger.error(f"[ERROR] Failed to process sensor event: {e}")


class SensorSubscription:
    """Releasable handle for the mesh subscription, attached to a WalkSession."""

    def __init__(self, topic_pattern: str):
        self.topic_pattern = topic_pattern

    def release(self) -> None:
        cleanup_walk_listener()

    def __repr__(self) -> str:
        return f"SensorSubscription({self.topic_pattern!r})"


def build_topic_pattern(prefix: str, user_id: str) -> str:
    return f"{prefix}/sensors/{user_id}/*"


def initialize_walk_listener(
    session: WalkSession,
    dispatcher: SensorEventDispatcher,
    user_id: str,
    settings: Optional[TrackerSettings] = None,
) -> Dict[str, Any]:
    """
    Subscribe to a user's sensor feeds on the event mesh.

    The subscription is attached to the session, so stopping the session
    unsubscribes before any state is cleared.

    Args:
        session: The walk session receiving the feeds
        dispatcher: Running dispatcher feeding the session
        user_id: Whose phone to listen to
        settings: Broker and topic configuration

    Returns:
        Dict with initialization status and metadata
    """
    settings = settings or get_tracker_settings()
    topic_pattern = build_topic_pattern(settings.topic_prefix, user_id)

    logger.info("[INIT] Initializing walk listener...")
    logger.info(f"[INIT] Connecting to: {settings.broker_url}")
    logger.info(f"[INIT] Subscribing to: {topic_pattern}")

    try:
        broker_props = {
            "solace.messaging.transport.host": settings.broker_url,
            "solace.messaging.service.vpn-name": settings.broker_vpn,
            "solace.messaging.authentication.scheme.basic.username": settings.broker_username,
            "solace.messaging.authentication.scheme.basic.password": settings.broker_password,
        }

        builder = MessagingService.builder().from_properties(broker_props)

        # For Solace Cloud (wss://), configure TLS
        if settings.broker_url.startswith("wss://"):
            tls_strategy = TLS.create().without_certificate_validation()
            builder = builder.with_transport_security_strategy(tls_strategy)
            logger.info("[INIT] TLS enabled (development mode)")

        _state.messaging_service = builder.build()
        _state.messaging_service.connect()
        logger.info("[INIT] Connected to Solace broker")

        subscription = TopicSubscription.of(topic_pattern)
        _state.receiver = (
            _state.messaging_service.create_direct_message_receiver_builder()
            .with_subscriptions([subscription])
            .build()
        )

        # Start receiver first, then register handler
        _state.receiver.start()
        _state.dispatcher = dispatcher
        _state.receiver.receive_async(SensorFeedHandler(dispatcher))
        _state.running = True

        session.attach(SensorSubscription(topic_pattern))

        logger.info(f"[INIT] Walk listener started, subscribed to: {topic_pattern}")

        return {
            "status": "initialized",
            "broker_url": settings.broker_url,
            "topic_pattern": topic_pattern,
            "message": "Walk listener ready to receive sensor events",
        }

    except Exception as e:
        logger.error(f"[INIT ERROR] Failed to initialize walk listener: {e}")
        cleanup_walk_listener()
        return {
            "status": "error",
            "error": str(e),
            "message": f"Failed to initialize walk listener: {e}",
        }


def cleanup_walk_listener() -> None:
    """Terminate the receiver and disconnect from the broker."""
    if not _state.running and _state.receiver is None and _state.messaging_service is None:
        return

    logger.info("[CLEANUP] Shutting down walk listener...")

    _state.running = False

    try:
        if _state.receiver:
            _state.receiver.terminate()
            logger.info("[CLEANUP] Receiver terminated")

        if _state.messaging_service:
            _state.messaging_service.disconnect()
            logger.info("[CLEANUP] Disconnected from Solace broker")

    except Exception as e:
        logger.error(f"[CLEANUP ERROR] {e}")

    finally:
        _state.receiver = None
        _state.messaging_service = None
        _state.dispatcher = None

    logger.info(f"[CLEANUP] Complete. Total events received: {_state.event_count}")
    logger.info(f"[CLEANUP] Events by kind: {json.dumps(_state.events_by_kind)}")


def get_walk_listener_status() -> Dict[str, Any]:
    """Get the current status of the walk listener."""
    return {
        "running": _state.running,
        "event_count": _state.event_count,
        "events_by_kind": _state.events_by_kind.copy(),
        "last_event_time": (
            _state.last_event_time.isoformat() if _state.last_event_time else None
        ),
    }
