"""Application configuration loaded from environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_prefix="WALK_API_", env_file=".env", extra="ignore")

    # API configuration
    api_host: str = "127.0.0.1"
    api_port: int = 8083

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Whose walk this server tracks
    user_id: str = "demo-user"

    # Hand finished step totals to the user-record store
    hand_off_steps: bool = True

    # Also receive sensor feeds from the Solace event mesh
    listen_on_mesh: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
