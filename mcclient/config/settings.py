"""
mcclient Configuration Settings

This module contains the configuration defaults for the Memcached client.
Explicit constructor arguments always take precedence over these values.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _optional_float(name: str) -> Optional[float]:
    raw = os.environ.get(name, "")
    return float(raw) if raw else None


@dataclass
class Settings:
    """Client configuration settings."""

    # Network settings
    HOST: str = os.environ.get("MCCLIENT_HOST", "127.0.0.1")
    PORT: int = int(os.environ.get("MCCLIENT_PORT", "11211"))
    TIMEOUT: Optional[float] = _optional_float("MCCLIENT_TIMEOUT")  # None = no connect timeout

    # Protocol settings
    READ_CHUNK_SIZE: int = 256
    MAX_KEY_LENGTH: int = 250

    # Compression settings
    COMPRESS_MIN_LENGTH: int = 1024

    # Logging settings
    DEBUG: bool = os.environ.get("MCCLIENT_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("MCCLIENT_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
