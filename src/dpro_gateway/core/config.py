"""Application configuration using pydantic-settings."""

import logging
import sys
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from dpro_gateway.protocol.constants import (
    CONNECT_TIMEOUT,
    KA_INTERVAL,
    MAX_DEFERRALS,
    MSG_DELAY,
    RCP_PORT,
    RECONNECT_DELAY,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables
    prefixed with DPRO_ (e.g., DPRO_HOST).
    """

    host: str = "192.168.0.128"
    port: int = RCP_PORT
    connect_timeout: float = CONNECT_TIMEOUT
    message_delay: float = MSG_DELAY
    keepalive_interval: float = KA_INTERVAL
    max_deferrals: int = MAX_DEFERRALS
    reconnect_delay: float = RECONNECT_DELAY
    catalog_file: str | None = None
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="DPRO_")

    @property
    def catalog_path(self) -> Path | None:
        """Path to a custom parameter table, if configured."""
        return Path(self.catalog_file) if self.catalog_file else None


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
