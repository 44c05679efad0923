"""Client module for talking to katsubushi."""

from .stats_client import StatsClient, fetch_stats

__all__ = ["StatsClient", "fetch_stats"]
