"""Protocol module for katsubushi-exporter."""

from .stats import (
    STATS_COMMAND,
    StatsConnectionError,
    StatsError,
    StatsParseError,
    StatsParser,
    StatsSnapshot,
)

__all__ = [
    "STATS_COMMAND",
    "StatsConnectionError",
    "StatsError",
    "StatsParseError",
    "StatsParser",
    "StatsSnapshot",
]
