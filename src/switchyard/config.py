"""Configuration management using Pydantic settings."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime tunables loaded from environment variables (SWITCHYARD_*)."""

    model_config = SettingsConfigDict(
        env_prefix="SWITCHYARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"

    # Tick loop
    tick_rate: float = 60.0             # ticks per second for the headless loop
    base_spawn_interval_ms: float = 1200.0

    # Layout generation
    zone_count: int = 4                 # play-width partition used for spread

    # Spawn admission global throttle
    coverage_ratio: float = 0.8         # fraction of tracks that must have switches
    throttle_pass_ratio: float = 0.3    # fraction of ticks let through when throttled

    # Fixed seed for reproducible runs (None = system entropy)
    seed: Optional[int] = None


settings = Settings()
