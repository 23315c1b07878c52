"""
Application Settings

Runtime configuration for the service layer (logging, device pairing,
relay). Values are read from the environment with the ``HRVSTREAM_``
prefix or from a local ``.env`` file. Analysis constants are fixed and
live in ``hrvstream.core.constants``.
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service configuration."""

    model_config = SettingsConfigDict(
        env_prefix="HRVSTREAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Device pairing
    auth_base_url: str = "https://production-api25.become-hub.com"
    auth_poll_interval_s: float = Field(default=5.0, gt=0)
    auth_timeout_s: float = Field(default=10.0, gt=0)

    # Relay
    relay_enabled: bool = False
    relay_base_url: str = "https://rest.ably.io"
    relay_token_url: str = "https://production-api25.become-hub.com/services/ably"
    relay_timeout_s: float = Field(default=5.0, gt=0)

    # Spectral worker pool size per session
    spectral_workers: int = Field(default=1, ge=1)


settings = Settings()
