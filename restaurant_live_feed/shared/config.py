"""
MODULE OVERVIEW:
Application-wide configuration for the restaurant live feed, using Pydantic Settings.

WHAT IS HAPPENING HERE:
Every timing and limit the transport, the simulator and the hub depend on is declared
here once. Components take explicit overrides in their constructors and only fall back
to these values, so tests never have to touch the environment.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PORT: int = 5000
    LOG_LEVEL: str = "INFO"

    # Transport
    SOCKET_URL: str = "ws://localhost:5000/ws"
    SOCKET_TIMEOUT_MS: int = 20000
    MAX_RECONNECT_ATTEMPTS: int = 5
    RECONNECT_INTERVAL_MS: int = 5000

    # Live feed
    LIVE_FEED_TICK_MS: int = 3000

    # Hub
    HUB_TICK_MS: int = 3000
    HUB_FEED_TYPES: list[str] = ["kitchen", "service", "financial", "alerts", "metrics"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        # Tolerate unrelated keys in a shared .env
        extra="ignore",
    )


settings = Settings()
