"""
katsubushi-exporter Configuration Settings

Defaults for the exporter. Every value can be overridden from the
environment, and the entry point lets command line flags override both.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass
class Settings:
    """Exporter configuration settings."""

    # HTTP settings
    LISTEN_ADDRESS: str = os.environ.get("KATSUBUSHI_EXPORTER_LISTEN_ADDRESS", ":9298")
    HTTP_READ_TIMEOUT: float = 10.0  # Seconds to wait for a request line

    # Target settings
    KATSUBUSHI_HOST: str = os.environ.get("KATSUBUSHI_HOST", "localhost")
    KATSUBUSHI_PORT: int = int(os.environ.get("KATSUBUSHI_PORT", "11212"))
    CONNECTION_TIMEOUT: float = float(os.environ.get("KATSUBUSHI_EXPORTER_TIMEOUT", "5"))

    # Polling settings
    METRICS_INTERVAL: int = int(os.environ.get("KATSUBUSHI_EXPORTER_METRICS_INTERVAL", "30"))
    RETRY_INTERVAL: int = 1

    # Metrics settings
    PROCESS_METRICS: bool = os.environ.get("KATSUBUSHI_EXPORTER_PROCESS_METRICS", "true").lower() == "true"

    # Logging settings
    DEBUG: bool = os.environ.get("KATSUBUSHI_EXPORTER_DEBUG", "false").lower() == "true"


def parse_listen_address(address: str) -> Tuple[Optional[str], int]:
    """
    Split a ``[host]:port`` listen address.

    An empty host means every interface and is returned as None, which
    MetricsHTTPServer binds as every IPv4 interface.

    Raises:
        ValueError: if the port is missing or not a valid port number
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {address!r}")

    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"invalid port in address {address!r}") from None
    if not 0 <= port_number <= 65535:
        raise ValueError(f"port out of range in address {address!r}")

    # [::1]:9298
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    return (host or None), port_number


# Global settings instance
settings = Settings()
