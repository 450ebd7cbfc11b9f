"""Walk tracker configuration loaded from environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class TrackerSettings(BaseSettings):
    """Tunable defaults for step detection, GPS filtering and the event mesh."""

    model_config = SettingsConfigDict(env_prefix="WALK_", env_file=".env", extra="ignore")

    # Step detection (empirical values, tune against real accelerometer data)
    sensitivity: float = 10.0
    window_size: int = 10
    min_step_interval_ms: float = 300.0
    max_step_interval_ms: float = 2000.0

    # Position filtering
    history_limit: int = 100
    accuracy_limit_m: float = 50.0
    max_jump_m: float = 1000.0
    min_walking_speed_mps: float = 0.5
    max_walking_speed_mps: float = 2.5

    # Session
    geolocation_timeout_s: float = 10.0
    inactivity_timeout_s: float = 30 * 60
    inactivity_check_interval_s: float = 60.0

    # External user-record store
    user_store_url: str = "http://localhost:3000"

    # Solace event mesh
    broker_url: str = "ws://localhost:8008"
    broker_vpn: str = "default"
    broker_username: str = "default"
    broker_password: str = "default"
    topic_prefix: str = "dinowalk"


@lru_cache
def get_tracker_settings() -> TrackerSettings:
    return TrackerSettings()
